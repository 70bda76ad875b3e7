"""
Calculation API Router.

Endpoints:
- POST /calculations: run initial_calculation or practice_update for a conversation
- GET /learning-paths/{user_id}: current stored learning path

A calculation whose conversation has not been analysed yet answers 202 with
``pending: true`` so the caller can retry later.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from traitpath.adaptive.orchestrator import CalculationOrchestrator
from traitpath.core.errors import InputMissingError, PersistenceError, TraitPathError
from traitpath.db.database import session_scope
from traitpath.db.repositories import (
    SqlCalculationStore,
    SqlCatalogRepository,
    SqlConversationRepository,
)

router = APIRouter()


# ========================================
# Request Models
# ========================================


class CalculationRequest(BaseModel):
    """Trigger payload sent when a conversation finishes."""

    user_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("user_id", "clerk_id", "userId"),
        description="User identifier",
    )
    conversation_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("conversation_id", "conversationId"),
        description="Conversation that triggered the calculation",
    )
    traits: dict[str, Any] | None = Field(
        None,
        description="Optional trait record overriding stored traits",
    )


def _error_response(exc: TraitPathError) -> JSONResponse:
    body = exc.to_dict()
    body["success"] = False
    return JSONResponse(status_code=exc.status_code, content=body)


# ========================================
# Endpoints
# ========================================


@router.post("/calculations", summary="Run a trait-to-skill calculation")
def trigger_calculation(payload: CalculationRequest, request: Request) -> Any:
    """
    Calculate skill weights and a learning path for a user.

    Mode is picked from the conversation: onboarding runs an initial
    calculation, anything else a practice update.
    """
    logger.info(
        f"Calculation requested for user {payload.user_id} (conversation {payload.conversation_id})"
    )
    settings = request.app.state.settings

    try:
        with session_scope(request.app.state.session_factory) as session:
            orchestrator = CalculationOrchestrator(
                catalog=SqlCatalogRepository(session),
                store=SqlCalculationStore(session),
                conversations=SqlConversationRepository(session),
                settings=settings,
            )
            result = orchestrator.run(payload.user_id, payload.conversation_id, payload.traits)
        return result.to_response()

    except InputMissingError as exc:
        logger.info(f"Calculation pending for {payload.user_id}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "pending": True, "message": exc.message},
        )
    except TraitPathError as exc:
        logger.error(f"Calculation failed for {payload.user_id} in phase {exc.phase}: {exc.message}")
        return _error_response(exc)
    except SQLAlchemyError as exc:
        logger.error(f"Commit failed for {payload.user_id}: {exc}")
        return _error_response(PersistenceError(str(exc), phase="persistence"))
    except Exception as exc:
        logger.exception(f"Unexpected failure calculating for {payload.user_id}")
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/learning-paths/{user_id}", summary="Get current learning path")
def get_learning_path(user_id: str, request: Request) -> Any:
    """Return the stored learning path document for a user."""
    try:
        with session_scope(request.app.state.session_factory) as session:
            document = SqlCalculationStore(session).get_learning_path(user_id)
    except TraitPathError as exc:
        logger.error(f"Failed to load learning path for {user_id}: {exc.message}")
        return _error_response(exc)

    if document is None:
        raise HTTPException(status_code=404, detail=f"No learning path for user {user_id}")
    return document
