from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

DownloadStatus = Literal["pending", "downloading", "completed", "failed", "cancelled"]


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class HistoryCreate(BaseModel):
    url: str = Field(min_length=1)
    title: str = ""


class HistoryEntry(HistoryCreate):
    id: int
    timestamp: str

    @classmethod
    def from_row(cls, row: Optional[tuple]) -> Optional["HistoryEntry"]:
        if not row:
            return None
        entry_id, url, title, timestamp = row
        return cls(id=entry_id, url=url, title=title, timestamp=timestamp)


class DownloadCreate(BaseModel):
    filename: str = Field(min_length=1)
    url: str = Field(min_length=1)
    status: DownloadStatus = "pending"
    progress: int = Field(default=0, ge=0, le=100)


class DownloadUpdate(BaseModel):
    status: DownloadStatus
    progress: Optional[int] = Field(default=None, ge=0, le=100)


class Download(DownloadCreate):
    id: int
    timestamp: str

    @classmethod
    def from_row(cls, row: Optional[tuple]) -> Optional["Download"]:
        if not row:
            return None
        download_id, filename, url, status, progress, timestamp = row
        return cls(
            id=download_id,
            filename=filename,
            url=url,
            status=status,
            progress=progress,
            timestamp=timestamp,
        )


class FeedbackCreate(BaseModel):
    message: str = Field(min_length=1)
    rating: int = Field(default=5, ge=1, le=5)


class Feedback(FeedbackCreate):
    id: int
    timestamp: str
