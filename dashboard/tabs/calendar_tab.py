import html
from datetime import date

import pandas as pd
import streamlit as st

from dashboard import calendar_grid
from dashboard.constants import (
    DEFAULT_END_TIME,
    DEFAULT_START_TIME,
    PREVIEW_ITEMS_PER_DAY,
    WEEKDAY_LABELS,
)
from dashboard.data import loaders
from dashboard.data.api_client import ApiError
from dashboard.state import session_slices

SLICE = "calendar"


def _cursor():
    raw = session_slices.get_value(SLICE, "cursor")
    if raw:
        return date.fromisoformat(raw)
    return calendar_grid.today().replace(day=1)


def _set_cursor(value):
    session_slices.set_value(SLICE, "cursor", calendar_grid.month_first_day(value).isoformat())


def _item_label(item, show_project):
    label = f"📌 {item.title}" if isinstance(item, calendar_grid.TaskItem) else item.title
    if show_project and item.project and item.project.name:
        label = f"{label} · {item.project.name}"
    return label


def _item_time_label(item):
    if item.all_day:
        return "All day"
    return f"{calendar_grid.time_hhmm(item.start)}–{calendar_grid.time_hhmm(item.end)}"


def _dot(item):
    return (
        f"<span style='display:inline-block;width:8px;height:8px;border-radius:50%;"
        f"background:{calendar_grid.dot_color(item)}'></span>"
    )


def _render_nav(cursor):
    cols = st.columns([3, 1, 1, 1])
    with cols[0]:
        st.markdown(f"<div class='section-title'>{calendar_grid.month_label(cursor)}</div>", unsafe_allow_html=True)
    with cols[1]:
        if st.button("←", key="calendar.prev", use_container_width=True):
            _set_cursor(calendar_grid.shift_month(cursor, -1))
            st.rerun()
    with cols[2]:
        if st.button("Today", key="calendar.today", use_container_width=True):
            _set_cursor(calendar_grid.today())
            st.rerun()
    with cols[3]:
        if st.button("→", key="calendar.next", use_container_width=True):
            _set_cursor(calendar_grid.shift_month(cursor, 1))
            st.rerun()


def _render_grid(cursor, buckets, view, show_project):
    header = st.columns(7)
    for idx, label in enumerate(WEEKDAY_LABELS):
        header[idx].caption(label)

    for week in calendar_grid.month_weeks(cursor):
        cols = st.columns(7)
        for idx, cell in enumerate(week):
            with cols[idx]:
                if cell is None:
                    st.markdown("<div class='calendar-blank'></div>", unsafe_allow_html=True)
                    continue
                key = calendar_grid.day_key(cell)
                day_list = buckets.get(key, [])
                marker = " •" if view.selected_day == key else ""
                count = f" ({len(day_list)})" if day_list else ""
                if st.button(f"{cell.day}{count}{marker}", key=f"calendar.day.{key}", use_container_width=True):
                    session_slices.set_view_state(SLICE, view.select_day(cell))
                    st.rerun()
                preview = [
                    f"<div>{_dot(item)} {html.escape(_item_label(item, show_project))}</div>"
                    for item in day_list[:PREVIEW_ITEMS_PER_DAY]
                ]
                if len(day_list) > PREVIEW_ITEMS_PER_DAY:
                    preview.append(f"<div class='small-label'>+{len(day_list) - PREVIEW_ITEMS_PER_DAY} more</div>")
                if preview:
                    st.markdown("".join(preview), unsafe_allow_html=True)


def _render_create_form(selected, project_id):
    prefix = selected.isoformat()
    with st.form(key=f"calendar.create.{prefix}", clear_on_submit=True):
        st.markdown("**Add event**")
        title = st.text_input("Title", key=f"calendar.create.title.{prefix}")
        description = st.text_area("Description (optional)", key=f"calendar.create.desc.{prefix}")
        all_day = st.checkbox("All day", key=f"calendar.create.allday.{prefix}")
        time_cols = st.columns(2)
        with time_cols[0]:
            start_hhmm = st.text_input("Start", value=DEFAULT_START_TIME, key=f"calendar.create.start.{prefix}")
        with time_cols[1]:
            end_hhmm = st.text_input("End", value=DEFAULT_END_TIME, key=f"calendar.create.end.{prefix}")
        submitted = st.form_submit_button("Add event")

    if not submitted:
        return
    if not (title or "").strip():
        st.warning("Title is required.")
        return
    try:
        body = calendar_grid.build_event_body(selected, title, description, all_day, start_hhmm, end_hhmm)
        loaders.create_event(body, project_id=project_id)
    except ValueError as exc:
        st.error(str(exc))
        return
    except ApiError as exc:
        st.error(f"Could not create event: {exc.message}")
        return
    st.rerun()


def _render_edit_form(item, selected, view):
    key = calendar_grid.item_key(item)
    with st.form(key=f"calendar.edit.{key}"):
        title = st.text_input("Title", value=item.title, key=f"calendar.edit.title.{key}")
        description = st.text_area("Description", value=item.description, key=f"calendar.edit.desc.{key}")
        all_day = st.checkbox("All day", value=item.all_day, key=f"calendar.edit.allday.{key}")
        time_cols = st.columns(2)
        with time_cols[0]:
            start_hhmm = st.text_input("Start", value=calendar_grid.time_hhmm(item.start), key=f"calendar.edit.start.{key}")
        with time_cols[1]:
            end_hhmm = st.text_input("End", value=calendar_grid.time_hhmm(item.end), key=f"calendar.edit.end.{key}")
        action_cols = st.columns(2)
        with action_cols[0]:
            save = st.form_submit_button("Save")
        with action_cols[1]:
            cancel = st.form_submit_button("Cancel")

    if cancel:
        session_slices.set_view_state(SLICE, view.stop_editing())
        st.rerun()
    if save:
        try:
            body = calendar_grid.build_event_body(selected, title, description, all_day, start_hhmm, end_hhmm)
            loaders.update_event(item, body)
        except ValueError as exc:
            st.error(str(exc))
            return
        except ApiError as exc:
            st.error(f"Could not update event: {exc.message}")
            return
        session_slices.set_view_state(SLICE, view.stop_editing())
        st.rerun()


def _render_day_panel(buckets, view, show_project, allow_create, project_id):
    selected = view.selected_date()
    if selected is None:
        st.caption("Select a day")
        return
    st.markdown(f"**{selected.strftime('%A %d %b')}**")
    st.caption("Personal + project events + deadlines" if project_id is None else "Project events + deadlines")

    if allow_create:
        _render_create_form(selected, project_id)

    day_list = buckets.get(calendar_grid.day_key(selected), [])
    if not day_list:
        st.caption("No items for this day.")
        return

    for item in day_list:
        key = calendar_grid.item_key(item)
        row = st.columns([6, 1, 1])
        with row[0]:
            st.markdown(
                f"{_dot(item)} <b>{html.escape(_item_label(item, show_project))}</b>"
                f"<div class='small-label'>{_item_time_label(item)}</div>",
                unsafe_allow_html=True,
            )
        if isinstance(item, calendar_grid.TaskItem):
            continue
        with row[1]:
            if st.button("Edit", key=f"calendar.item.edit.{key}"):
                session_slices.set_view_state(SLICE, view.start_editing(key))
                st.rerun()
        with row[2]:
            if st.button("Delete", key=f"calendar.item.delete.{key}"):
                try:
                    loaders.delete_event(item)
                except ApiError as exc:
                    st.error(f"Could not delete event: {exc.message}")
                else:
                    st.rerun()
        if view.is_editing(item):
            _render_edit_form(item, selected, view)


def _render_month_overview(cursor, buckets):
    rows = []
    for cell in calendar_grid.month_cells(cursor):
        if cell is None:
            continue
        day_list = buckets.get(calendar_grid.day_key(cell), [])
        rows.append(
            {
                "Date": cell.strftime("%d/%m/%Y"),
                "Items": len(day_list),
                "Preview": " | ".join(f"{_item_time_label(item)} • {item.title}" for item in day_list[:3]),
            }
        )
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True, height=300)


def render_calendar_tab(ctx):
    project_id = ctx.get("project_id")
    allow_create = ctx.get("allow_create", True)
    show_project = project_id is None

    cursor = _cursor()
    view = session_slices.get_view_state(SLICE)

    _render_nav(cursor)

    try:
        items = loaders.load_calendar_items(cursor, project_id=project_id)
    except ApiError as exc:
        st.error(exc.message or "Could not load calendar")
        items = []
    except RuntimeError as exc:
        st.error(str(exc))
        items = []

    buckets = calendar_grid.bucket_by_day(items)

    layout = st.columns([1.6, 1.0], gap="large")
    with layout[0]:
        _render_grid(cursor, buckets, view, show_project)
        with st.expander("Month overview", expanded=False):
            _render_month_overview(cursor, buckets)
    with layout[1]:
        _render_day_panel(buckets, view, show_project, allow_create, project_id)
