from pydantic import BaseModel


class Replica(BaseModel):
    """Subset of a Sensay replica listing entry."""

    id: str
    name: str | None = None
    slug: str | None = None


class ReplicaListResponse(BaseModel):
    replicas: list[Replica]
