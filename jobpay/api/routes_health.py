from __future__ import annotations

from fastapi import APIRouter

from jobpay.api.dependencies import RegistryDep

router = APIRouter(tags=["health"])


@router.get("/live")
async def live() -> dict[str, str]:
    """Kubernetes-style liveness endpoint (no dependencies)."""
    return {"status": "alive"}


@router.get("/healthz")
async def healthz(registry: RegistryDep) -> dict[str, object]:
    """Liveness plus the number of payment sessions held in memory."""
    return {"status": "ok", "open_sessions": len(registry)}
