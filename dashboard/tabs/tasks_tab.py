import html
from datetime import date, datetime, time

import streamlit as st

from dashboard import calendar_grid, task_board
from dashboard.constants import STATUS_COLORS, TASK_STATUS_LABELS, TASK_STATUSES
from dashboard.data import loaders
from dashboard.data.api_client import ApiError
from dashboard.state import session_slices

SLICE = "tasks"


def _tasks_key(project_id):
    return f"tasks.{project_id}"


def _load_tasks(project_id, refresh=False):
    key = _tasks_key(project_id)
    cached = session_slices.get_value(SLICE, key)
    if cached is not None and not refresh:
        return cached
    tasks = loaders.load_project_tasks(project_id)
    session_slices.set_value(SLICE, key, tasks)
    return tasks


def _deadline(task):
    raw = task.get("deadline")
    return calendar_grid.parse_timestamp(raw) if raw else None


def _deadline_label(task):
    deadline = _deadline(task)
    if deadline is None:
        return "No deadline"
    return deadline.astimezone(calendar_grid.local_zone()).strftime("%d/%m/%Y")


def _member_options(project):
    members = [project.get("owner")] + list(project.get("members") or [])
    seen = []
    for member in members:
        if member and member not in seen:
            seen.append(member)
    return seen


def _commit(project_id, tasks, task_id, patch):
    updated, error = task_board.commit_task_patch(tasks, task_id, patch, loaders.send_task_patch)
    session_slices.set_value(SLICE, _tasks_key(project_id), updated)
    if error:
        session_slices.set_value(SLICE, "error", error)
    else:
        session_slices.set_value(SLICE, "error", None)
    st.rerun()


def _render_task_card(project, tasks, task):
    task_id = task.get("_id")
    status = task.get("status") or "todo"
    st.markdown(
        f"<div style='border-left:4px solid {STATUS_COLORS.get(status, STATUS_COLORS['todo'])};padding-left:8px;'>"
        f"<b>{html.escape(task.get('title') or '')}</b>"
        f"<div class='small-label'>{_deadline_label(task)}</div></div>",
        unsafe_allow_html=True,
    )
    with st.expander("Details", expanded=False):
        if task.get("description"):
            st.caption(task["description"])
        new_status = st.selectbox(
            "Status",
            TASK_STATUSES,
            index=TASK_STATUSES.index(status) if status in TASK_STATUSES else 0,
            format_func=lambda value: TASK_STATUS_LABELS[value],
            key=f"tasks.status.{task_id}",
        )
        if new_status != status:
            _commit(project["_id"], tasks, task_id, {"status": new_status})

        members = ["(unassigned)"] + _member_options(project)
        current_assignee = task.get("assignedTo") or "(unassigned)"
        new_assignee = st.selectbox(
            "Assigned to",
            members,
            index=members.index(current_assignee) if current_assignee in members else 0,
            key=f"tasks.assignee.{task_id}",
        )
        if new_assignee != current_assignee:
            _commit(project["_id"], tasks, task_id, {"assignedTo": None if new_assignee == "(unassigned)" else new_assignee})

        deadline = _deadline(task)
        current_day = deadline.astimezone(calendar_grid.local_zone()).date() if deadline else None
        picked = st.date_input("Deadline", value=current_day, key=f"tasks.deadline.{task_id}")
        if picked != current_day:
            if picked is None:
                _commit(project["_id"], tasks, task_id, {"deadline": None})
            else:
                instant = datetime.combine(picked, time(12, 0), tzinfo=calendar_grid.local_zone())
                _commit(project["_id"], tasks, task_id, {"deadline": calendar_grid.to_iso(instant)})

        if st.button("Delete task", key=f"tasks.delete.{task_id}"):
            try:
                loaders.delete_task(task_id)
            except ApiError as exc:
                st.error(f"Could not delete task: {exc.message}")
            else:
                _load_tasks(project["_id"], refresh=True)
                st.rerun()


def _render_create_form(project):
    with st.form(key=f"tasks.create.{project['_id']}", clear_on_submit=True):
        cols = st.columns([3, 2, 1])
        with cols[0]:
            title = st.text_input("New task")
        with cols[1]:
            deadline = st.date_input("Deadline", value=None, min_value=date(2000, 1, 1))
        with cols[2]:
            submitted = st.form_submit_button("Add")
    if not submitted:
        return
    if not (title or "").strip():
        st.warning("Title is required.")
        return
    body = {"title": title.strip()}
    if deadline:
        body["deadline"] = calendar_grid.to_iso(
            datetime.combine(deadline, time(12, 0), tzinfo=calendar_grid.local_zone())
        )
    try:
        loaders.create_task(project["_id"], body)
    except ApiError as exc:
        st.error(f"Could not create task: {exc.message}")
        return
    _load_tasks(project["_id"], refresh=True)
    st.rerun()


def render_tasks_tab(ctx):
    project = ctx.get("project")
    if not project:
        st.info("Select a project in the sidebar to see its task board.")
        return

    try:
        tasks = _load_tasks(project["_id"], refresh=ctx.get("refresh", False))
    except ApiError as exc:
        st.error(exc.message or "Could not load tasks")
        return

    error = session_slices.get_value(SLICE, "error")
    if error:
        st.error(error)

    _render_create_form(project)

    columns = task_board.group_by_status(tasks)
    layout = st.columns(len(TASK_STATUSES))
    for idx, status in enumerate(TASK_STATUSES):
        with layout[idx]:
            st.markdown(
                f"<div class='section-title'>{TASK_STATUS_LABELS[status]} ({len(columns[status])})</div>",
                unsafe_allow_html=True,
            )
            for task in columns[status]:
                _render_task_card(project, tasks, task)
