from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Any, ClassVar, Dict, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator


Collection = Literal["event", "article"]
Status = Literal["pending", "approved", "rejected", "published"]
Priority = Literal["low", "medium", "high"]
PublicationStatus = Literal["published", "draft", "archived"]
ModerationAction = Literal["approved", "rejected", "edited"]

# Resolution priority: an id present in both collections resolves to the first.
COLLECTIONS: Tuple[str, ...] = ("event", "article")

SOURCE_TABLES: Dict[str, str] = {
    "event": "events",
    "article": "newsroom_articles",
}

PUBLISHED_TABLES: Dict[str, str] = {
    "event": "published_events",
    "article": "published_news",
}
FALLBACK_PUBLISHED_TABLE = "published_articles"

# Keys accepted by the published feed reader.
PUBLISHED_KINDS: Dict[str, str] = {
    "events": "published_events",
    "news": "published_news",
    "articles": "published_articles",
}

MODERATION_LOG_TABLE = "moderation_log"
PUBLICATION_LOG_TABLE = "publication_log"


def source_table(collection: str) -> str:
    try:
        return SOURCE_TABLES[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection!r}")


def published_table(collection: str) -> str:
    return PUBLISHED_TABLES.get(collection, FALLBACK_PUBLISHED_TABLE)


# ----------------------------
# Content items (tagged by collection)
# ----------------------------

class ContentBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Fields a moderator may change through edit(); workflow fields are excluded.
    EDITABLE: ClassVar[frozenset[str]] = frozenset({"title", "priority", "source_url"})

    id: str
    title: str = Field(..., min_length=1)
    status: Status = "pending"
    priority: Priority = "medium"
    source: str = "community_submission"
    source_url: Optional[str] = None

    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be blank")
        return v

    @model_validator(mode="after")
    def _rejected_has_reason(self):
        if self.status == "rejected" and not (self.rejection_reason or "").strip():
            raise ValueError("rejection_reason is required when status is rejected")
        return self

    @property
    def body(self) -> str:
        raise NotImplementedError

    @property
    def byline(self) -> Optional[str]:
        raise NotImplementedError

    def to_record(self) -> Dict[str, Any]:
        """Row shape for the source table (the collection tag is not stored)."""
        return self.model_dump(exclude={"collection"})


class EventItem(ContentBase):
    EDITABLE: ClassVar[frozenset[str]] = ContentBase.EDITABLE | {
        "description",
        "event_date",
        "location",
        "organizer",
    }

    collection: Literal["event"] = "event"
    description: str = Field(..., min_length=1)
    event_date: datetime
    location: Optional[str] = None
    organizer: Optional[str] = None

    @property
    def body(self) -> str:
        return self.description

    @property
    def byline(self) -> Optional[str]:
        return self.organizer


class ArticleItem(ContentBase):
    EDITABLE: ClassVar[frozenset[str]] = ContentBase.EDITABLE | {"content", "author"}

    collection: Literal["article"] = "article"
    content: str = Field(..., min_length=1)
    author: Optional[str] = None

    @property
    def body(self) -> str:
        return self.content

    @property
    def byline(self) -> Optional[str]:
        return self.author


ContentItem = Annotated[Union[EventItem, ArticleItem], Field(discriminator="collection")]

_ITEM_ADAPTER: TypeAdapter = TypeAdapter(ContentItem)

VARIANTS: Dict[str, type[ContentBase]] = {
    "event": EventItem,
    "article": ArticleItem,
}


def parse_item(row: Mapping[str, Any], collection: str) -> ContentBase:
    """Build the variant for `collection` from a stored row."""
    return _ITEM_ADAPTER.validate_python({**row, "collection": collection})


# ----------------------------
# Published copies + audit records
# ----------------------------

class PublishedContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    content: Optional[str] = None
    author: Optional[str] = None
    published_at: datetime
    status: PublicationStatus = "published"
    source: Optional[str] = None
    approved_by: Optional[str] = None
    original_event_id: Optional[str] = None
    original_article_id: Optional[str] = None
    event_date: Optional[datetime] = None
    location: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None

    @property
    def original_id(self) -> Optional[str]:
        return self.original_event_id or self.original_article_id


class ModerationLogEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    content_id: str
    content_table: str
    action: ModerationAction
    moderator_id: str
    reason: Optional[str] = None
    timestamp: datetime


class PublicationLogEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    published_id: str
    published_table: str
    original_id: str
    original_table: str
    approved_by: Optional[str] = None
    published_at: datetime


# ----------------------------
# Batch results
# ----------------------------

@dataclass(frozen=True)
class BatchItemOutcome:
    content_id: str
    status: Literal["approved", "rejected", "failed"]
    data: Optional[PublishedContent] = None
    reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"


@dataclass(frozen=True)
class BatchResult:
    successful: Tuple[str, ...] = ()
    failed: Tuple[str, ...] = ()
    results: Tuple[BatchItemOutcome, ...] = field(default_factory=tuple)

    def record(self, outcome: BatchItemOutcome) -> "BatchResult":
        if outcome.ok:
            return BatchResult(self.successful + (outcome.content_id,), self.failed, self.results + (outcome,))
        return BatchResult(self.successful, self.failed + (outcome.content_id,), self.results + (outcome,))
