from __future__ import annotations

import os

import streamlit as st

ENV_PATH = os.path.join(os.path.dirname(__file__), "..", ".env")
TOKEN_STATE_KEY = "auth.token"

ENV_FALLBACK_KEYS = {
    ("app", "API_BASE_URL"): "API_BASE_URL",
    ("app", "API_TOKEN"): "API_TOKEN",
}


def load_local_env():
    if not os.path.exists(ENV_PATH):
        return
    with open(ENV_PATH, "r", encoding="utf-8") as env_file:
        for raw_line in env_file:
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def get_secret(path, default=None):
    env_key = ENV_FALLBACK_KEYS.get(tuple(path))
    if env_key:
        env_value = os.getenv(env_key)
        if env_value:
            return env_value
    try:
        current = st.secrets
        for key in path:
            if key not in current:
                return default
            current = current[key]
    except (FileNotFoundError, KeyError):
        return default
    return current


def session_token():
    return st.session_state.get(TOKEN_STATE_KEY) or None


def render_token_input():
    """Sidebar field for pasting a bearer token when none is configured."""
    with st.sidebar:
        current = session_token() or ""
        value = st.text_input("API token", value=current, type="password", key="auth.token_input")
        if value != current:
            st.session_state[TOKEN_STATE_KEY] = value.strip()
            st.rerun()
        if current and st.button("Sign out", key="auth.sign_out"):
            st.session_state.pop(TOKEN_STATE_KEY, None)
            st.rerun()
