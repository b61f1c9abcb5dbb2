"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health(request: Request):
    """Liveness check with scrape backlog and stored media totals."""
    state = request.app.state
    return {
        "status": "ok",
        "pendingScrapes": state.executor.pending_count,
        "storedMedia": state.repository.count(),
    }
