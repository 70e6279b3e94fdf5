import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from app.search.client import SearchClient, SearchError
from app.search.models import SearchRequest
from app.utils.exception_logging import log_exception_with_details

router = APIRouter(prefix="/proxy")
logger = logging.getLogger("uvicorn.error")


def get_search_client(request: Request) -> SearchClient:
    return request.app.state.search_client


@router.post("/search")
async def search(body: SearchRequest, client: SearchClient = Depends(get_search_client)):
    try:
        result = await client.search(body.query)
    except SearchError as e:
        log_exception_with_details(logger, "[Search]", e)
        raise HTTPException(status_code=500, detail="Search failed")
    return result.model_dump()
