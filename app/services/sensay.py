"""Client for the Sensay replica chat-completion API.

The exact path and authentication convention accepted by the upstream has
changed between API versions, so a completion is attempted against an
ordered table of request variants (``CANDIDATES``) until one answers with a
2xx JSON body. Each variant is tried at most once per call and nothing is
remembered between calls.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import asdict, dataclass, field

import httpx

from app.config import Settings
from app.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


@dataclass
class AttemptRecord:
    path: str
    url: str
    status: int | None = None
    error: str | None = None
    response: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CompletionRequest:
    """Everything a candidate needs to build its URL, headers and payload."""

    base_url: str
    replica_id: str
    user_id: str
    messages: list[dict]
    model: str

    @property
    def last_content(self) -> str:
        if not self.messages:
            return ""
        return self.messages[-1].get("content") or ""


@dataclass(frozen=True)
class FallbackCandidate:
    label: str
    build_url: Callable[[CompletionRequest], str]
    build_payload: Callable[[CompletionRequest], dict]
    auth: str = "organization"   # or "bearer"
    needs_replica: bool = True


@dataclass
class CompletionOutcome:
    reply: str | None
    candidate: str
    attempts: list[AttemptRecord] = field(default_factory=list)


def _strip_version(base_url: str) -> str:
    return re.sub(r"/v1$", "", base_url)


CANDIDATES: tuple[FallbackCandidate, ...] = (
    FallbackCandidate(
        label="standard",
        build_url=lambda r: f"{r.base_url}/replicas/{r.replica_id}/chat/completions",
        build_payload=lambda r: {
            "content": r.last_content,
            "source": "web",
            "skip_chat_history": False,
        },
    ),
    FallbackCandidate(
        label="experimental",
        build_url=lambda r: f"{r.base_url}/experimental/replicas/{r.replica_id}/chat/completions",
        build_payload=lambda r: {
            "messages": r.messages,
            "model": r.model,
            "source": "web",
            "store": True,
        },
    ),
    FallbackCandidate(
        label="experimental-bearer",
        build_url=lambda r: f"{r.base_url}/experimental/replicas/{r.replica_id}/chat/completions",
        build_payload=lambda r: {"messages": r.messages, "source": "web", "store": True},
        auth="bearer",
    ),
    FallbackCandidate(
        label="no-v1-prefix",
        build_url=lambda r: f"{_strip_version(r.base_url)}/replicas/{r.replica_id}/chat/completions",
        build_payload=lambda r: {"content": r.last_content},
    ),
    FallbackCandidate(
        label="no-chat-segment",
        build_url=lambda r: f"{r.base_url}/replicas/{r.replica_id}/completions",
        build_payload=lambda r: {"content": r.last_content},
    ),
    FallbackCandidate(
        label="openai-style",
        build_url=lambda r: f"{r.base_url}/chat/completions",
        build_payload=lambda r: {"messages": r.messages, "model": r.model, "user": r.user_id},
        needs_replica=False,
    ),
)


def extract_reply(data) -> str | None:
    """Pull the assistant text out of a completion body.

    Looks at ``choices[0].message.content``, then ``choices[0].text``, then a
    top-level ``content`` field. Returns None when none of them is a string.
    """
    if not isinstance(data, dict):
        return None

    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        first = choices[0]
        message = first.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        if isinstance(first.get("text"), str):
            return first["text"]

    if isinstance(data.get("content"), str):
        return data["content"]
    return None


class SensayClient:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.base_url = settings.sensay_api_url_base
        self.transport = transport
        self.candidates = CANDIDATES

    # ------------------------------------------------------------------
    # Headers
    # ------------------------------------------------------------------

    def _organization_headers(self, user_id: str | None = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-ORGANIZATION-SECRET": self.settings.sensay_organization_secret,
            "X-API-VERSION": self.settings.sensay_api_version,
        }
        if user_id:
            headers["X-USER-ID"] = user_id
        return headers

    def _bearer_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {self.settings.sensay_organization_secret}",
        }

    def _headers_for(self, candidate: FallbackCandidate, user_id: str) -> dict[str, str]:
        if candidate.auth == "bearer":
            return self._bearer_headers()
        return self._organization_headers(user_id)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.sensay_request_timeout,
            transport=self.transport,
        )

    # ------------------------------------------------------------------
    # Replicas
    # ------------------------------------------------------------------

    async def list_replicas(self) -> list[dict]:
        """List the organization's replicas.

        Raises:
            httpx.HTTPError on transport errors or non-2xx responses.
            ValueError if the body is not JSON or not a replica list.
        """
        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}/replicas", headers=self._organization_headers()
            )
        response.raise_for_status()
        data = response.json()

        if isinstance(data, dict):
            data = data.get("items") or data.get("replicas") or []
        if not isinstance(data, list):
            raise ValueError("Unexpected replicas listing shape")
        return [r for r in data if isinstance(r, dict) and r.get("id")]

    async def resolve_replica_id(
        self,
        replica_id: str | None = None,
        attempts: list[AttemptRecord] | None = None,
    ) -> str | None:
        """Explicit id, then the configured one, then the first listed replica.

        A failed or empty listing is appended to ``attempts`` and None is
        returned, so callers can still try the candidates that need no id.
        """
        if replica_id:
            return replica_id
        if self.settings.sensay_replica_id:
            return self.settings.sensay_replica_id
        if attempts is None:
            attempts = []

        url = f"{self.base_url}/replicas"
        try:
            replicas = await self.list_replicas()
        except httpx.HTTPStatusError as e:
            logger.warning("Listing Sensay replicas returned %s", e.response.status_code)
            attempts.append(
                AttemptRecord(
                    path="list-replicas",
                    url=url,
                    status=e.response.status_code,
                    error=str(e),
                    response=e.response.text,
                )
            )
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Listing Sensay replicas failed: %s", e)
            attempts.append(AttemptRecord(path="list-replicas", url=url, error=str(e) or type(e).__name__))
            return None

        if not replicas:
            logger.warning("No Sensay replicas listed for this organization")
            attempts.append(AttemptRecord(path="list-replicas", url=url, status=200, error="No replicas found"))
            return None

        logger.info("Using first listed replica %s", replicas[0]["id"])
        return replicas[0]["id"]

    # ------------------------------------------------------------------
    # Completions
    # ------------------------------------------------------------------

    async def complete(
        self,
        replica_id: str | None,
        user_id: str,
        messages: list[dict],
    ) -> CompletionOutcome:
        """Try each candidate in order and return the first usable answer.

        ``replica_id`` is resolved first (see ``resolve_replica_id``). When
        no id can be found, candidates whose path needs one are recorded as
        skipped and the rest are still tried.

        A candidate succeeds on any 2xx response whose body is JSON; the
        reply may still be None if the body has no recognizable text.

        Raises:
            UpstreamUnavailable with every AttemptRecord, in order.
        """
        attempts: list[AttemptRecord] = []
        replica_id = await self.resolve_replica_id(replica_id, attempts)

        request = CompletionRequest(
            base_url=self.base_url,
            replica_id=replica_id or "",
            user_id=user_id,
            messages=messages,
            model=self.settings.sensay_model,
        )

        async with self._client() as client:
            for candidate in self.candidates:
                if candidate.needs_replica and not replica_id:
                    attempts.append(
                        AttemptRecord(path=candidate.label, url="", error="Skipped: no replica id available")
                    )
                    continue

                url = candidate.build_url(request)
                logger.info("Trying Sensay %s path: %s", candidate.label, url)

                try:
                    response = await client.post(
                        url,
                        headers=self._headers_for(candidate, user_id),
                        json=candidate.build_payload(request),
                    )
                except httpx.HTTPError as e:
                    logger.warning("Sensay %s path failed: %s", candidate.label, e)
                    attempts.append(AttemptRecord(path=candidate.label, url=url, error=str(e) or type(e).__name__))
                    continue

                body = response.text
                if not response.is_success:
                    logger.warning(
                        "Sensay %s path returned %s", candidate.label, response.status_code
                    )
                    attempts.append(
                        AttemptRecord(
                            path=candidate.label,
                            url=url,
                            status=response.status_code,
                            error=f"HTTP {response.status_code}",
                            response=body,
                        )
                    )
                    continue

                try:
                    data = response.json()
                except ValueError as e:
                    logger.warning("Sensay %s path returned a non-JSON body", candidate.label)
                    attempts.append(
                        AttemptRecord(
                            path=candidate.label,
                            url=url,
                            status=response.status_code,
                            error=f"Unparsable response body: {e}",
                            response=body,
                        )
                    )
                    continue

                logger.info("Sensay %s path succeeded (%s)", candidate.label, response.status_code)
                return CompletionOutcome(
                    reply=extract_reply(data),
                    candidate=candidate.label,
                    attempts=attempts,
                )

        raise UpstreamUnavailable(
            "All API path attempts failed",
            attempts=attempts,
            replica_id=replica_id or "",
            base_url=self.base_url,
        )
