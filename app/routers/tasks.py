from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_current_user, get_task_store
from app.errors import InvalidRequest
from app.models.tasks import Task, TaskCreateRequest, TaskListResponse
from app.services.task_store import TaskStore

router = APIRouter(prefix="/v1/api/tasks", tags=["tasks"])


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    user_id: str = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
):
    return TaskListResponse(tasks=store.list(user_id))


@router.post("", response_model=Task, status_code=201)
async def create_task(
    request: TaskCreateRequest,
    user_id: str = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
):
    text = request.text.strip()
    if not text:
        raise InvalidRequest("Task text is required")
    return store.create(user_id, text)


@router.patch("/{task_id}/toggle", response_model=Task)
async def toggle_task(
    task_id: str,
    user_id: str = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
):
    """Flip a task between pending and completed."""
    task = store.get(user_id, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")

    updated = store.set_completed(user_id, task.id, not task.completed)
    if not updated:
        raise HTTPException(status_code=404, detail="Task not found")
    return updated


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    user_id: str = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
):
    store.delete(user_id, task_id)
