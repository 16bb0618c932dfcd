"""
HTTP surface for the triage core.

Design intent:
- Keep routing thin; every decision is made by ``TriageService``.
- Map core errors to status codes: invalid input -> 400, unknown
  session -> 404.
- Own all logging; the core itself never logs.

Run with ``uvicorn transreality.api:app``.  Set ``TRANSREALITY_POLICY_PATH``
to load a triage policy from YAML instead of the built-in defaults.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from transreality.config import DEFAULT_POLICY, TriagePolicy, load_policy_from_yaml
from transreality.service import InvalidInputError, TriageService
from transreality.store import SessionNotFoundError, SessionStore

logger = logging.getLogger(__name__)

POLICY_PATH_ENV = "TRANSREALITY_POLICY_PATH"


class IngestResponse(BaseModel):
    session_id: str
    triage_status: str


class ActionResponse(BaseModel):
    action_id: str
    ethics_status: str


def _policy_from_env() -> TriagePolicy:
    raw = os.getenv(POLICY_PATH_ENV, "").strip()
    if not raw:
        return DEFAULT_POLICY
    policy = load_policy_from_yaml(raw)
    logger.info("loaded triage policy from %s", raw)
    return policy


def _get_service(request: Request) -> TriageService:
    return request.app.state.triage_service


def create_app(service: TriageService | None = None) -> FastAPI:
    """Build the FastAPI app around a triage service.

    Args:
        service: Service to route requests to.  When omitted, a fresh
            ``SessionStore`` is created and the policy is taken from
            ``TRANSREALITY_POLICY_PATH`` (or the defaults).
    """
    if service is None:
        service = TriageService(SessionStore(), policy=_policy_from_env())

    app = FastAPI(title="transreality triage service")
    app.state.triage_service = service
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def malformed_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("malformed request body on %s", request.url.path)
        return JSONResponse(status_code=400, content={"detail": "Malformed request body"})

    @app.post("/api/v1/events/artemis", status_code=201, response_model=IngestResponse)
    async def ingest_event(
        request: Request,
        payload: Any = Body(default=None),
    ) -> IngestResponse:
        try:
            result = _get_service(request).ingest_event(payload)
        except InvalidInputError as exc:
            logger.warning("ingest rejected: %s", exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        logger.info(
            "ingested event_id=%s session_id=%s recommendation=%s",
            payload.get("event_id"),
            result.session_id,
            result.recommendation.value,
        )
        return IngestResponse(
            session_id=result.session_id,
            triage_status=result.recommendation.value,
        )

    @app.get("/api/v1/session/{session_id}")
    async def get_session(session_id: str, request: Request) -> dict[str, Any]:
        try:
            session = _get_service(request).get_session(session_id)
        except SessionNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Session not found") from exc
        return session.model_dump(mode="json", by_alias=True)

    @app.post("/api/v1/session/{session_id}/action", response_model=ActionResponse)
    async def apply_action(
        session_id: str,
        request: Request,
        body: Any = Body(default=None),
    ) -> ActionResponse:
        service = _get_service(request)
        fields = body if isinstance(body, Mapping) else {}
        try:
            if body is not None and not isinstance(body, Mapping):
                service.get_session(session_id)
                raise InvalidInputError("Action request must be a JSON object")
            result = service.apply_action(
                session_id,
                fields.get("action"),
                justification=fields.get("justification"),
                actor=fields.get("actor"),
            )
        except SessionNotFoundError as exc:
            logger.warning("action on unknown session_id=%s", session_id)
            raise HTTPException(status_code=404, detail="Session not found") from exc
        except InvalidInputError as exc:
            logger.warning("action rejected session_id=%s: %s", session_id, exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        logger.info(
            "action=%s session_id=%s action_id=%s ethics_status=%s applied=%s",
            fields.get("action"),
            session_id,
            result.action_id,
            result.ethics_status.value,
            result.applied,
        )
        return ActionResponse(
            action_id=result.action_id,
            ethics_status=result.ethics_status.value,
        )

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok", "now": datetime.now(timezone.utc).isoformat()}

    return app


app = create_app()
