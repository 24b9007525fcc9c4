"""
Presence Routes
===============

- GET /presence/online  live snapshot kept by the aggregator subscription
- GET /presence/stats   capacity utilisation from a one-shot count
"""

from fastapi import APIRouter, HTTPException, status

from src.application.api.dependencies import AggregatorDep, GatekeeperDep
from src.application.api.models.guard import (
    OnlineRecordResponse,
    OnlineUsersResponse,
    ServerStatsResponse,
)
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/presence", tags=["Presence"])


@router.get("/online", response_model=OnlineUsersResponse)
async def get_online_users(aggregator: AggregatorDep):
    snapshot = aggregator.snapshot
    return OnlineUsersResponse(
        operators_online=snapshot.operators_online,
        admins_online=snapshot.admins_online,
        total=snapshot.total,
        records=[
            OnlineRecordResponse(
                identity=r.identity,
                role=r.role,
                display_name=r.display_name,
                contact_handle=r.contact_handle,
                last_seen_at=r.last_seen_at,
                connected_at=r.connected_at,
            )
            for r in snapshot.records
        ],
    )


@router.get("/stats", response_model=ServerStatsResponse)
async def get_server_stats(gatekeeper: GatekeeperDep):
    try:
        stats = await gatekeeper.server_stats()
    except Exception as e:
        logger.warning("Server stats unavailable", stage="ADM.4", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Presence registry unavailable",
        ) from e
    return ServerStatsResponse(**stats.to_dict())
