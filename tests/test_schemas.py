from backend.schemas import CalendarResponse, EventItem, TaskItem


def test_calendar_response_reads_wire_names():
    payload = {
        "items": [
            {
                "_id": "e1",
                "kind": "event",
                "title": "Seminar",
                "start": "2024-03-10T09:00:00.000Z",
                "end": "2024-03-10T10:00:00.000Z",
                "allDay": False,
                "color": "#2563eb",
            },
            {
                "_id": "t1",
                "kind": "task",
                "title": "Submit",
                "start": "2024-03-15T00:00:00.000Z",
                "end": "2024-03-15T23:59:59.999Z",
                "allDay": True,
                "status": "done",
                "project": {"_id": "p1", "name": "Thesis"},
            },
        ]
    }

    response = CalendarResponse.model_validate(payload)

    assert [type(item) for item in response.items] == [EventItem, TaskItem]
    assert response.items[1].project.id == "p1"
    assert response.model_dump(by_alias=True, exclude_none=True) == payload


def test_calendar_items_build_from_field_names():
    item = TaskItem(id="t1", title="Submit", start="a", end="b", all_day=True, status="todo")

    dumped = item.model_dump(by_alias=True, exclude_none=True)

    assert dumped["_id"] == "t1"
    assert dumped["allDay"] is True
    assert "project" not in dumped
