WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

TASK_STATUSES = ["todo", "doing", "done"]
TASK_STATUS_LABELS = {
    "todo": "To do",
    "doing": "Doing",
    "done": "Done",
}

STATUS_COLORS = {
    "done": "#22c55e",
    "doing": "#f59e0b",
    "todo": "#ef4444",
}
EVENT_DOT_COLOR = "#3b82f6"

PREVIEW_ITEMS_PER_DAY = 2
DEFAULT_START_TIME = "10:00"
DEFAULT_END_TIME = "11:00"
