"""Health and readiness check routes."""

import time

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/")
async def root() -> dict:
    return {"ok": True}


@router.get("/ready")
async def ready(request: Request) -> dict:
    """Lightweight readiness check — no external calls."""
    return {"status": "ok", "service": "procryptomancer-api", "commit": request.app.state.settings.git_sha}


@router.get("/api/health")
async def health(request: Request) -> dict:
    """Service health plus price-cache counters. Never calls the upstream."""
    state = request.app.state
    return {
        "status": "up",
        "storage": "memory",
        "users": len(state.users),
        "submissions": len(state.submissions),
        "cache": state.price_cache.stats(),
        "ts": int(time.time() * 1000),
    }
