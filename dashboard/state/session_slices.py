import streamlit as st

from dashboard.calendar_grid import CalendarViewState


PREFIX = "slice"


def get_slice(slice_name):
    key = f"{PREFIX}.{slice_name}"
    if key not in st.session_state:
        st.session_state[key] = {}
    return st.session_state[key]


def get_value(slice_name, name, default=None):
    payload = get_slice(slice_name)
    return payload.get(name, default)


def set_value(slice_name, name, value):
    payload = get_slice(slice_name)
    payload[name] = value


def get_view_state(slice_name) -> CalendarViewState:
    return CalendarViewState.from_dict(get_value(slice_name, "view"))


def set_view_state(slice_name, state: CalendarViewState):
    set_value(slice_name, "view", state.to_dict())
