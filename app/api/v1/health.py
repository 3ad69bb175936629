from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import get_store
from app.clients.storage import KeyValueStore, storage_available
from app.schemas.responses import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(store: KeyValueStore = Depends(get_store)) -> HealthResponse:
    return HealthResponse(storage="ok" if storage_available(store) else "degraded")
