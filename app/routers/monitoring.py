"""Router telemetry endpoints backed by the live router monitor.

Handlers are coroutines so they read the metrics store on the event loop,
between frames applied by the monitor task.
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from app.auth import get_current_user
from app.schemas import (
    ErrorResponse,
    MonitoringSnapshotResponse,
    RouterHistoryResponse,
    RouterMetricSchema,
)
from app.services.router_monitor import RouterMonitor

router = APIRouter(
    prefix="/api/monitoring",
    tags=["Monitoring"],
    dependencies=[Depends(get_current_user)],
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
)


def get_router_monitor(request: Request) -> RouterMonitor:
    return request.app.state.router_monitor


@router.get(
    "/routers",
    response_model=MonitoringSnapshotResponse,
    summary="List monitored routers",
    description=(
        "Returns the latest metrics of every router reported by the "
        "telemetry upstream, ordered by name, with the connection state."
    ),
)
async def list_routers(monitor: RouterMonitor = Depends(get_router_monitor)):
    return monitor.snapshot()


@router.get(
    "/routers/{router_id}",
    response_model=RouterMetricSchema,
    summary="Get one monitored router",
    responses={404: {"model": ErrorResponse, "description": "Router not found"}},
)
async def get_router(router_id: str, monitor: RouterMonitor = Depends(get_router_monitor)):
    metric = monitor.store.get(router_id)
    if metric is None:
        raise HTTPException(status_code=404, detail=f"Router '{router_id}' not found.")
    return metric.to_dict()


@router.get(
    "/routers/{router_id}/history",
    response_model=RouterHistoryResponse,
    summary="Get recent samples of one router",
    description="Up to the configured history limit, oldest first.",
    responses={404: {"model": ErrorResponse, "description": "Router not found"}},
)
async def router_history(router_id: str, monitor: RouterMonitor = Depends(get_router_monitor)):
    if router_id not in monitor.store:
        raise HTTPException(status_code=404, detail=f"Router '{router_id}' not found.")
    return {
        "router_id": router_id,
        "points": [point.to_dict() for point in monitor.store.history(router_id)],
    }
