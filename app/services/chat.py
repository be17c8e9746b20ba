import logging
from dataclasses import dataclass

from app.errors import InvalidRequest, MissingIdentity, UpstreamUnavailable
from app.models.chat import ChatMessage
from app.models.tasks import Task
from app.services.intents import TaskAction, TaskIntent, parse_intent
from app.services.sensay import SensayClient
from app.services.task_store import TaskStore

logger = logging.getLogger(__name__)

TASK_CONTEXT_PROMPT = """You are helping the user manage a to-do list.
The user can say "add task ...", "complete task <number>" or "delete task <number>".
{task_summary}"""

NO_TASKS = "The user currently has no tasks."

PLACEHOLDER_REPLY = "Sorry, I couldn't understand the replica's response."


@dataclass
class ChatResult:
    reply: str
    tasks: list[Task]


def summarize_tasks(tasks: list[Task]) -> str:
    if not tasks:
        return NO_TASKS
    lines = ["Current tasks:"]
    for i, task in enumerate(tasks, start=1):
        status = "Completed" if task.completed else "Pending"
        lines.append(f"{i}. {task.text} [{status}]")
    return "\n".join(lines)


class ChatGateway:
    """Forward a conversation to the replica and apply task commands.

    One call is one sequence of awaited steps: load the user's tasks, call
    the upstream through its fallback candidates, apply at most one task
    mutation taken from the last message, and re-read the tasks if that
    mutation went through. Only an exhausted fallback chain fails the call;
    task-store problems are logged and absorbed.
    """

    def __init__(self, task_store: TaskStore, sensay: SensayClient):
        self.task_store = task_store
        self.sensay = sensay

    async def handle(
        self,
        user_id: str,
        messages: list[ChatMessage],
        replica_id: str | None = None,
    ) -> ChatResult:
        if not user_id:
            raise MissingIdentity("Missing user identity (X-USER-ID)")
        if not messages:
            raise InvalidRequest("Messages are required in the request body")

        # The last message drives intent detection whatever its role.
        last = messages[-1]
        if not last.content:
            raise InvalidRequest("Invalid last message format")

        tasks = self._load_tasks(user_id)
        forwarded = self._build_messages(tasks, messages)

        try:
            outcome = await self.sensay.complete(replica_id, user_id, forwarded)
        except UpstreamUnavailable as e:
            logger.error(
                "Sensay unavailable for user %s after %d attempt(s)", user_id, len(e.attempts)
            )
            e.tasks = tasks
            raise

        reply = outcome.reply
        if reply is None:
            logger.warning("Sensay %s path returned no reply text", outcome.candidate)
            reply = PLACEHOLDER_REPLY

        intent = parse_intent(last.content)
        if intent and self._apply_intent(intent, user_id, tasks):
            tasks = self._refresh_tasks(user_id, tasks)

        return ChatResult(reply=reply, tasks=tasks)

    # ------------------------------------------------------------------
    # Task context
    # ------------------------------------------------------------------

    def _load_tasks(self, user_id: str) -> list[Task]:
        try:
            return self.task_store.list(user_id)
        except Exception as e:
            logger.warning("Failed to load tasks for user %s: %s", user_id, e)
            return []

    def _build_messages(self, tasks: list[Task], messages: list[ChatMessage]) -> list[dict]:
        """Prepend the task summary as a system message."""
        context = TASK_CONTEXT_PROMPT.format(task_summary=summarize_tasks(tasks))
        forwarded = [{"role": "system", "content": context}]
        forwarded.extend(m.model_dump() for m in messages)
        return forwarded

    def _refresh_tasks(self, user_id: str, fallback: list[Task]) -> list[Task]:
        try:
            return self.task_store.list(user_id)
        except Exception as e:
            logger.warning("Failed to refresh tasks for user %s: %s", user_id, e)
            return fallback

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _apply_intent(self, intent: TaskIntent, user_id: str, tasks: list[Task]) -> bool:
        """Run the write for ``intent``. Returns True if a row changed."""
        if intent.action is TaskAction.ADD:
            try:
                self.task_store.create(user_id, intent.text)
            except Exception as e:
                logger.error("Failed to add task for user %s: %s", user_id, e)
                return False
            logger.info("Task added for user %s: %r", user_id, intent.text)
            return True

        # Positions refer to the list loaded before the upstream call.
        if intent.index is None or not 1 <= intent.index <= len(tasks):
            logger.info(
                "Ignoring %s for task %s: user %s has %d task(s)",
                intent.action.value, intent.index, user_id, len(tasks),
            )
            return False
        task = tasks[intent.index - 1]

        if intent.action is TaskAction.COMPLETE:
            if task.completed:
                return False
            try:
                self.task_store.set_completed(user_id, task.id, True)
            except Exception as e:
                logger.error("Failed to complete task %s: %s", task.id, e)
                return False
            logger.info("Task %s completed for user %s", task.id, user_id)
            return True

        try:
            self.task_store.delete(user_id, task.id)
        except Exception as e:
            logger.error("Failed to delete task %s: %s", task.id, e)
            return False
        logger.info("Task %s deleted for user %s", task.id, user_id)
        return True
