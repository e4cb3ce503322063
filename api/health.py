"""Health check reporting store connectivity."""

from __future__ import annotations

from fastapi import APIRouter

from config.settings import get_settings
from services.registry import get_services

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health():
    settings = get_settings()
    services = get_services()
    metadata_ok = await services.store.ping()
    return {
        "status": "healthy" if metadata_ok else "degraded",
        "metadata_store": settings.metadata_store_type,
        "metadata_store_ok": metadata_ok,
        "vector_store": settings.vector_store_type,
    }
