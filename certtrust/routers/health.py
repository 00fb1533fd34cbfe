# certtrust/routers/health.py
# Health check endpoint

import datetime
import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..exceptions import StorageError
from ..services import InitState, TrustService
from .dependencies import get_trust_service

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    uptime: int
    initialization: str
    trust_store: Dict[str, Any]


router = APIRouter()

_start_time = time.time()


def get_uptime() -> int:
    """Seconds since the module was loaded"""
    return int(time.time() - _start_time)


def get_trust_store_health(service: TrustService) -> Dict[str, Any]:
    """Describe the durable store without waiting for initialization"""
    store_info: Dict[str, Any] = {"path": str(service.store.path)}
    if service.state is not InitState.READY:
        store_info["status"] = "not_ready"
        return store_info

    try:
        store_info["entries"] = len(service.list_entries())
        store_info["status"] = "healthy"
    except StorageError as e:
        logger.error(f"Trust store health check failed: {e}")
        store_info["status"] = "unhealthy"
        store_info["error"] = str(e)
    return store_info


@router.get("/health", response_model=HealthResponse, tags=["health"])
def health_check(service: TrustService = Depends(get_trust_service)):
    """Health check with initialization state and trust store status"""
    store_info = get_trust_store_health(service)

    if store_info["status"] == "healthy":
        overall_status = "online"
    elif store_info["status"] == "not_ready":
        overall_status = "starting"
    else:
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.datetime.now().isoformat(),
        uptime=get_uptime(),
        initialization=service.state.value,
        trust_store=store_info
    )
