from supabase import Client

from app.models.tasks import Task


class TaskStore:
    """Per-user to-do rows in Supabase.

    Every query is filtered by ``user_id`` in addition to the table's
    row-level policy, which stays the authority on ownership.
    """

    COLUMNS = "id, user_id, text, completed, created_at"

    def __init__(self, supabase: Client, table: str = "tasks"):
        self.supabase = supabase
        self.table = table

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self, user_id: str) -> list[Task]:
        """All tasks owned by ``user_id``, oldest first."""
        result = (
            self.supabase.table(self.table)
            .select(self.COLUMNS)
            .eq("user_id", user_id)
            .order("created_at")
            .execute()
        )
        return [Task(**row) for row in result.data or []]

    def get(self, user_id: str, task_id: int | str) -> Task | None:
        result = (
            self.supabase.table(self.table)
            .select(self.COLUMNS)
            .eq("id", task_id)
            .eq("user_id", user_id)
            .execute()
        )
        if not result.data:
            return None
        return Task(**result.data[0])

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, user_id: str, text: str) -> Task:
        result = (
            self.supabase.table(self.table)
            .insert({"user_id": user_id, "text": text, "completed": False})
            .execute()
        )
        return Task(**result.data[0])

    def set_completed(self, user_id: str, task_id: int | str, completed: bool) -> Task | None:
        result = (
            self.supabase.table(self.table)
            .update({"completed": completed})
            .eq("id", task_id)
            .eq("user_id", user_id)
            .execute()
        )
        if not result.data:
            return None
        return Task(**result.data[0])

    def delete(self, user_id: str, task_id: int | str) -> None:
        self.supabase.table(self.table).delete().eq("id", task_id).eq(
            "user_id", user_id
        ).execute()
