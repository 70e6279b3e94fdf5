import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from app.storage.models import (
    DownloadCreate,
    DownloadUpdate,
    FeedbackCreate,
    HistoryCreate,
)
from app.storage.store import BrowserStore
from app.vars import HISTORY_LIMIT

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


def get_store(request: Request) -> BrowserStore:
    return request.app.state.store


@router.get("/history")
def list_history(store: BrowserStore = Depends(get_store)):
    return [entry.model_dump() for entry in store.list_history(HISTORY_LIMIT)]


@router.post("/history")
def create_history(body: HistoryCreate, store: BrowserStore = Depends(get_store)):
    entry = store.create_history(body)
    logger.debug(f"[Storage] History entry {entry.id} recorded for {entry.url}")
    return JSONResponse(status_code=201, content=entry.model_dump())


@router.get("/downloads")
def list_downloads(store: BrowserStore = Depends(get_store)):
    return [download.model_dump() for download in store.list_downloads()]


@router.post("/downloads")
def create_download(body: DownloadCreate, store: BrowserStore = Depends(get_store)):
    download = store.create_download(body)
    return JSONResponse(status_code=201, content=download.model_dump())


@router.patch("/downloads/{download_id}")
def update_download(
    download_id: int,
    body: DownloadUpdate,
    store: BrowserStore = Depends(get_store),
):
    download = store.update_download_status(download_id, body.status, body.progress)
    if download is None:
        logger.warning(f"[Storage] Download {download_id} not found")
        raise HTTPException(status_code=404, detail="Download not found")
    return download.model_dump()


@router.post("/feedback")
def create_feedback(body: FeedbackCreate, store: BrowserStore = Depends(get_store)):
    feedback = store.create_feedback(body)
    return JSONResponse(status_code=201, content=feedback.model_dump())
