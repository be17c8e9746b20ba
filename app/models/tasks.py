from datetime import datetime

from pydantic import BaseModel, Field


class Task(BaseModel):
    id: int | str
    text: str
    completed: bool = False
    user_id: str | None = None
    created_at: datetime | None = None


class TaskCreateRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)


class TaskListResponse(BaseModel):
    tasks: list[Task]
