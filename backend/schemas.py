from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ProjectCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


class ProjectJoin(BaseModel):
    join_code: Optional[str] = Field(None, alias="joinCode")


class EventCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None
    all_day: bool = Field(False, alias="allDay")
    color: Optional[str] = None


class EventPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None
    all_day: Optional[bool] = Field(None, alias="allDay")
    color: Optional[str] = None


class TaskCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    deadline: Optional[str] = None


class TaskPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    deadline: Optional[str] = None
    assigned_to: Optional[str] = Field(None, alias="assignedTo")


class ProjectRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: Optional[str] = None


class CalendarItemBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    title: str
    start: str
    end: str
    all_day: bool = Field(alias="allDay")
    project: Optional[ProjectRef] = None
    color: Optional[str] = None


class EventItem(CalendarItemBase):
    kind: Literal["event"] = "event"


class TaskItem(CalendarItemBase):
    kind: Literal["task"] = "task"
    status: Literal["todo", "doing", "done"]


CalendarItem = Annotated[Union[EventItem, TaskItem], Field(discriminator="kind")]


class CalendarResponse(BaseModel):
    items: List[CalendarItem]
