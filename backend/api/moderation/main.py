from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from moderation.config import load_settings
from moderation.db import db_ping, get_engine
from moderation.errors import ModerationError, ValidationError
from moderation.logging_config import configure_logging, get_logger
from moderation.models import BatchResult, ContentBase
from moderation.schemas import (
    BatchOut,
    BatchRequest,
    ModerationRequest,
    PendingCountOut,
    PublicationStatusIn,
    SubmissionIn,
    SuccessOut,
)
from moderation.service import ModerationService
from moderation.store import SqlContentStore
from moderation.workflow import allowed_transitions, list_states

logger = get_logger(__name__)

ACTIONS = ("approve", "reject", "edit")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _item_out(item: ContentBase) -> Dict[str, Any]:
    return item.model_dump(mode="json")


def _batch_out(result: BatchResult) -> BatchOut:
    return BatchOut(
        successful=list(result.successful),
        failed=list(result.failed),
        results=[
            {
                "contentId": o.content_id,
                "status": o.status,
                "data": o.data.model_dump(mode="json") if o.data is not None else None,
                "reason": o.reason,
                "error": o.error,
            }
            for o in result.results
        ],
    )


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_json)
    logger.info("api_started", version=app.version)
    yield


def create_app(service: Optional[ModerationService] = None) -> FastAPI:
    """
    Build the HTTP adapter. Pass a service to run against a specific store;
    otherwise one is built lazily from DATABASE_URL on first use.
    """
    app = FastAPI(title="Community Moderation API", version="1.0.0", lifespan=lifespan)
    app.state.service = service

    # -----------------------------
    # Error envelopes
    # -----------------------------
    @app.exception_handler(ModerationError)
    async def moderation_error_handler(request: Request, exc: ModerationError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.message)
        return _error(exc.status_code, exc.label, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'] if p != 'body') or 'body'}: {err['msg']}" for err in exc.errors()
        )
        return _error(400, ValidationError.label, problems)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("request_crashed", path=request.url.path)
        return _error(500, "Internal server error", str(exc) or "Unknown error occurred")

    def get_service(request: Request) -> ModerationService:
        svc = request.app.state.service
        if svc is None:
            svc = ModerationService(SqlContentStore(get_engine()), load_settings())
            request.app.state.service = svc
        return svc

    # -----------------------------
    # Health checks
    # -----------------------------
    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/readyz")
    def readyz(service: ModerationService = Depends(get_service)):
        if isinstance(service.store, SqlContentStore):
            db_ping(service.store.engine)
        return {"status": "ready", "db": "ok"}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # -----------------------------
    # Workflow helpers
    # -----------------------------
    @app.get("/workflow/states")
    def workflow_states():
        return {"states": list_states()}

    @app.get("/content/{content_id}/allowed")
    def content_allowed(content_id: str, service: ModerationService = Depends(get_service)):
        item = service.get_content(content_id)
        return {
            "content_id": content_id,
            "collection": item.collection,
            "from_state": item.status,
            "allowed": allowed_transitions(item.status),
        }

    # -----------------------------
    # Moderation actions
    # -----------------------------
    @app.post("/api/moderate-content", response_model=SuccessOut)
    def moderate_content(body: ModerationRequest, service: ModerationService = Depends(get_service)):
        if not body.action or not body.content_id or not body.moderator_id:
            return _error(400, "Missing required fields", "action, contentId, and moderatorId are required")
        if body.action not in ACTIONS:
            return _error(400, "Invalid action", "action must be one of: approve, reject, edit")

        if body.action == "approve":
            published = service.approve(body.content_id, body.moderator_id)
            return SuccessOut(
                message="Content approved and published successfully",
                data={
                    "published": published.model_dump(mode="json"),
                    "contentId": body.content_id,
                    "action": "approved",
                    "timestamp": _now_iso(),
                },
            )

        if body.action == "reject":
            if not body.reason:
                return _error(400, "Missing required field", "reason is required for rejection")
            service.reject(body.content_id, body.moderator_id, body.reason)
            return SuccessOut(
                message="Content rejected successfully",
                data={
                    "contentId": body.content_id,
                    "action": "rejected",
                    "reason": body.reason,
                    "moderatorId": body.moderator_id,
                    "timestamp": _now_iso(),
                },
            )

        if not body.edits:
            return _error(400, "Missing required field", "edits object is required for edit action")
        updated = service.edit(body.content_id, body.moderator_id, body.edits)
        return SuccessOut(
            message="Content edited successfully",
            data={
                "updated": _item_out(updated),
                "contentId": body.content_id,
                "action": "edited",
                "edits": body.edits,
                "moderatorId": body.moderator_id,
                "timestamp": _now_iso(),
            },
        )

    @app.post("/api/moderate-content/batch", response_model=BatchOut)
    def moderate_batch(body: BatchRequest, service: ModerationService = Depends(get_service)):
        if not body.content_ids or not body.action or not body.moderator_id:
            return _error(400, "Missing required fields", "contentIds, action, and moderatorId are required")
        result = service.batch_action(body.content_ids, body.action, body.moderator_id, body.reason)
        return _batch_out(result)

    # -----------------------------
    # Dashboard reads
    # -----------------------------
    @app.get("/moderation/queue")
    def moderation_queue(collection: Optional[str] = None, service: ModerationService = Depends(get_service)):
        return [_item_out(i) for i in service.get_moderation_queue(collection)]

    @app.get("/moderation/pending-count", response_model=PendingCountOut)
    def pending_count(collection: Optional[str] = None, service: ModerationService = Depends(get_service)):
        return PendingCountOut(pending_count=service.get_pending_count(collection), collection=collection)

    # -----------------------------
    # Content endpoints
    # -----------------------------
    @app.post("/content", status_code=201)
    def submit_content(body: SubmissionIn, service: ModerationService = Depends(get_service)):
        fields = body.model_dump(exclude_none=True, exclude={"collection"})
        return _item_out(service.submit(body.collection, fields))

    @app.get("/content/{content_id}")
    def get_content(content_id: str, service: ModerationService = Depends(get_service)):
        return _item_out(service.get_content(content_id))

    @app.get("/content/{content_id}/history")
    def get_content_history(content_id: str, service: ModerationService = Depends(get_service)):
        return [e.model_dump(mode="json") for e in service.history(content_id)]

    # -----------------------------
    # Published content
    # -----------------------------
    @app.get("/published")
    def published(kind: Optional[str] = None, service: ModerationService = Depends(get_service)):
        return [p.model_dump(mode="json") for p in service.get_published_content(kind)]

    @app.post("/published/{published_id}/status")
    def published_status(
        published_id: str,
        body: PublicationStatusIn,
        service: ModerationService = Depends(get_service),
    ):
        return service.update_publication_status(published_id, body.status).model_dump(mode="json")

    return app


app = create_app()
