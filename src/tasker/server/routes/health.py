"""Health check routes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        Health status.
    """
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness check endpoint.

    Ready once the scheduler has recovered persisted tasks and accepts new
    ones.
    """
    runtime = request.app.state.runtime
    if not runtime.running:
        return JSONResponse(status_code=503, content={"status": "starting"})
    return JSONResponse(
        content={
            "status": "ready",
            "queue_pending": runtime.dispatcher.pending,
            "executors_outstanding": runtime.dispatcher.outstanding,
        }
    )
