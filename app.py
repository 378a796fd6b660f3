import streamlit as st

from dashboard.auth import get_secret, load_local_env, render_token_input, session_token
from dashboard.data import api_client, loaders
from dashboard.data.api_client import ApiError
from dashboard.logging_config import configure_logging
from dashboard.router import render_router
from dashboard.theme import inject_theme_css

DASHBOARD_OPTION = "All projects (dashboard)"


st.set_page_config(page_title="Study Calendar", layout="wide")

load_local_env()
configure_logging()
api_client.configure(secret_getter=get_secret, token_getter=session_token)
inject_theme_css()


def render_project_sidebar():
    with st.sidebar:
        st.markdown("### Projects")
        try:
            projects = loaders.load_projects()
        except ApiError as exc:
            st.error(exc.message or "Could not load projects")
            projects = []

        by_label = {DASHBOARD_OPTION: None}
        for project in projects:
            by_label[f"{project['name']} ({project['joinCode']})"] = project
        choice = st.selectbox("View", list(by_label.keys()), key="ui.project_choice")

        with st.expander("New project", expanded=False):
            with st.form("projects.create", clear_on_submit=True):
                name = st.text_input("Name")
                description = st.text_area("Description (optional)")
                if st.form_submit_button("Create"):
                    try:
                        loaders.create_project(name, description)
                    except ApiError as exc:
                        st.error(exc.message)
                    else:
                        st.rerun()

        with st.expander("Join project", expanded=False):
            with st.form("projects.join", clear_on_submit=True):
                code = st.text_input("Join code")
                if st.form_submit_button("Join"):
                    try:
                        loaders.join_project(code)
                    except ApiError as exc:
                        st.error(exc.message)
                    else:
                        st.rerun()

    return by_label[choice]


st.markdown("<div class='page-title'>Study Calendar</div>", unsafe_allow_html=True)

if not api_client.api_base_url():
    st.error("API_BASE_URL not configured. Set it in the environment or in .streamlit/secrets.toml.")
    st.stop()

render_token_input()
if not api_client.bearer_token():
    st.info("Paste an API token in the sidebar to load your calendar.")
    st.stop()

project = render_project_sidebar()

context = {
    "project": project,
    "project_id": project["_id"] if project else None,
    "allow_create": True,
}

render_router(context)
