import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_current_user, get_sensay_client
from app.models.replicas import Replica, ReplicaListResponse
from app.services.sensay import SensayClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/api/replicas", tags=["replicas"])


@router.get("", response_model=ReplicaListResponse)
async def list_replicas(
    _user_id: str = Depends(get_current_user),
    sensay: SensayClient = Depends(get_sensay_client),
):
    """List the replicas visible to the configured organization secret."""
    try:
        replicas = await sensay.list_replicas()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Listing Sensay replicas failed: %s", e)
        raise HTTPException(status_code=502, detail="Could not list replicas from Sensay")

    return ReplicaListResponse(
        replicas=[
            Replica(id=str(r["id"]), name=r.get("name"), slug=r.get("slug"))
            for r in replicas
        ]
    )
