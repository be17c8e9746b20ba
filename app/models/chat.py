from typing import Literal

from pydantic import BaseModel, Field

from app.models.tasks import Task


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str | None = None


class ChatRequest(BaseModel):
    messages: list[ChatMessage]
    replica_id: str | None = Field(default=None, alias="replicaId")

    model_config = {"populate_by_name": True}


class ChatResponse(BaseModel):
    reply: str
    tasks: list[Task] = []
