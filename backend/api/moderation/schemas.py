from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


ModerationActionName = Literal["approve", "reject", "edit"]


class ModerationRequest(BaseModel):
    """Body of the single-item action endpoint. Presence checks happen in the handler."""

    model_config = ConfigDict(populate_by_name=True)

    action: Optional[str] = None
    content_id: Optional[str] = Field(None, alias="contentId")
    moderator_id: Optional[str] = Field(None, alias="moderatorId")
    reason: Optional[str] = None
    edits: Optional[Dict[str, Any]] = None


class BatchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content_ids: Optional[List[str]] = Field(None, alias="contentIds")
    action: Optional[str] = None
    moderator_id: Optional[str] = Field(None, alias="moderatorId")
    reason: Optional[str] = None


class SubmissionIn(BaseModel):
    collection: Literal["event", "article"]
    title: str = Field(..., min_length=1, max_length=400)
    content: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    event_date: Optional[datetime] = None
    location: Optional[str] = None
    organizer: Optional[str] = None
    source_url: Optional[str] = None
    priority: Optional[Literal["low", "medium", "high"]] = None


class PublicationStatusIn(BaseModel):
    status: Literal["published", "draft", "archived"]


class SuccessOut(BaseModel):
    success: bool = True
    message: str
    data: Any = None


class ErrorOut(BaseModel):
    error: str
    message: str


class PendingCountOut(BaseModel):
    pending_count: int
    collection: Optional[str] = None


class BatchItemOut(BaseModel):
    contentId: str
    status: Literal["approved", "rejected", "failed"]
    data: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None
    error: Optional[str] = None


class BatchOut(BaseModel):
    successful: List[str]
    failed: List[str]
    results: List[BatchItemOut]
