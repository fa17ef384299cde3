from fastapi import APIRouter
from schemas.signaling import PingResponse

health_router = APIRouter(tags=["health"])


@health_router.get("/ping", response_model=PingResponse)
async def ping():
    """Liveness probe."""
    return PingResponse(success=True)
