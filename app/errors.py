class GatewayError(Exception):
    """Base error rendered as ``{"error": ...}`` by the app's exception handler."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_content(self) -> dict:
        return {"error": self.message}


class InvalidRequest(GatewayError):
    status_code = 400


class MissingIdentity(GatewayError):
    status_code = 400


class ServerMisconfigured(GatewayError):
    status_code = 500


class UpstreamUnavailable(GatewayError):
    """Every fallback candidate failed.

    Carries the attempt records so operators can see which paths were tried,
    plus whatever tasks were loaded before the upstream calls.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        attempts: list | None = None,
        tasks: list | None = None,
        replica_id: str = "",
        base_url: str = "",
    ):
        super().__init__(message)
        self.attempts = attempts or []
        self.tasks = tasks or []
        self.replica_id = replica_id
        self.base_url = base_url

    def to_content(self) -> dict:
        return {
            "error": self.message,
            "tasks": [t.model_dump(mode="json") for t in self.tasks],
            "apiDetails": {
                "attempts": [a.to_dict() for a in self.attempts],
                "replicaId": self.replica_id,
                "baseApiUrl": self.base_url,
            },
        }
