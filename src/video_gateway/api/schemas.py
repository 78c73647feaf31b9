from typing import Any

from pydantic import BaseModel


class VideoURLRequest(BaseModel):
    # Validated by the URL gate, not by pydantic, so bad input is a 400
    url: Any = None


class FormatResponse(BaseModel):
    format_id: str
    ext: str
    resolution: str
    filesize: int | None = None


class VideoInfoResponse(BaseModel):
    title: str
    duration: float
    thumbnail: str
    uploader: str
    view_count: int
    formats: list[FormatResponse]


class FormatsResponse(BaseModel):
    formats: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None
    kind: str | None = None
