"""Scrape submission and media query endpoints.

Thin translation layer: request parsing and status codes live here, the
pipeline and query logic live in the services held on ``app.state``.
"""

import logging
from typing import List

from fastapi import APIRouter, Body, HTTPException, Query, Request, status

from src.constants import MAX_PAGE_SIZE
from src.models.media_models import MediaPage, ScrapeAccepted
from src.services.query_service import InvalidQueryError, MediaQueryService, parse_kind
from src.services.scrape_coordinator import EmptyUrlBatchError, ScrapeCoordinator
from src.services.task_executor import ExecutorShutdownError

logger = logging.getLogger(__name__)
router = APIRouter()


def get_coordinator(request: Request) -> ScrapeCoordinator:
    return request.app.state.coordinator


def get_query_service(request: Request) -> MediaQueryService:
    return request.app.state.query_service


@router.post(
    "/scrape",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ScrapeAccepted,
)
async def submit_scrape(request: Request, urls: List[str] = Body(...)):
    """Accept a batch of page URLs and scrape them in the background."""
    coordinator = get_coordinator(request)
    try:
        accepted = coordinator.submit(urls)
    except EmptyUrlBatchError as e:
        logger.info("Rejected empty scrape batch")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ExecutorShutdownError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)
        )

    return ScrapeAccepted(
        message=f"Processing {accepted} URLs in the background.",
        accepted=accepted,
        pending=request.app.state.executor.pending_count,
    )


@router.get("/media", response_model=MediaPage, response_model_by_alias=True)
def list_media(
    request: Request,
    type: str | None = Query(default=None, description="IMAGE or VIDEO"),
    search: str | None = Query(
        default=None, description="Substring of the source page URL (needs type)"
    ),
    page: int = Query(default=0, ge=0),
    size: int | None = Query(default=None, ge=1, le=MAX_PAGE_SIZE),
    sort: List[str] | None = Query(default=None, description="e.g. id,desc"),
):
    """Return a page of stored media, newest first unless sorted otherwise."""
    service = get_query_service(request)
    try:
        kind = parse_kind(type)
        page_request = service.page_request(page=page, size=size, sort=sort)
    except InvalidQueryError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return service.query(kind=kind, search=search, page=page_request)
