import streamlit as st

THEME_PRESETS = {
    "dark": {
        "bg_main": "#121017",
        "bg_card": "#1e1a27",
        "border": "#5b4f70",
        "text_main": "#f3edf9",
        "text_soft": "#c8bbd8",
        "button": "#5f4f79",
        "button_hover": "#725f90",
        "today_border": "#d9c979",
    },
    "light": {
        "bg_main": "#f7f3ed",
        "bg_card": "#fff9f1",
        "border": "#c4b59f",
        "text_main": "#1b1b1b",
        "text_soft": "#5d5d5d",
        "button": "#b29a7d",
        "button_hover": "#9f876b",
        "today_border": "#9b845f",
    },
}


def ensure_theme_state():
    if "ui_theme" not in st.session_state:
        st.session_state["ui_theme"] = "dark"
    if st.session_state["ui_theme"] not in THEME_PRESETS:
        st.session_state["ui_theme"] = "dark"
    return st.session_state["ui_theme"]


def get_active_theme():
    name = ensure_theme_state()
    return name, THEME_PRESETS[name]


def inject_theme_css() -> dict:
    name, theme = get_active_theme()
    st.markdown(
        f"""
<style>
.stApp {{
    background: {theme["bg_main"]};
    color: {theme["text_main"]};
}}
.page-title {{
    font-size: 28px;
    font-weight: 600;
    color: {theme["text_main"]};
}}
.section-title {{
    font-size: 20px;
    font-weight: 600;
    margin: 4px 0 8px 0;
    color: {theme["text_main"]};
}}
.small-label {{
    font-size: 12px;
    color: {theme["text_soft"]};
}}
.calendar-blank {{
    min-height: 38px;
}}
.stButton > button {{
    background: {theme["button"]};
    border: 1px solid {theme["border"]};
    color: {theme["text_main"]};
}}
.stButton > button:hover {{
    background: {theme["button_hover"]};
}}
div[data-testid="stExpander"] {{
    background: {theme["bg_card"]};
    border: 1px solid {theme["border"]};
}}
</style>
""",
        unsafe_allow_html=True,
    )
    return {"name": name, **theme}
