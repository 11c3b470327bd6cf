"""
Live Event API Routes.

Staff drive the live board through one command endpoint carrying the
closed command set; members and staff read the live views.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from liveboard.config.feature_flags import feature_flags
from liveboard.database import get_db, AsyncSessionLocal
from liveboard.errors import (
    ErrorCode, ErrorResponse, OperationResult, http_status_for, to_error_response
)
from liveboard.rbac import Actor, get_current_actor, require_staff, actor_from_token
from liveboard.schemas.live_event import live_command_adapter
from liveboard.services.audit_service import (
    AuditSink, DatabaseAuditSink, LoggingAuditSink, list_audit_entries, verify_chain
)
from liveboard.services.live_cache import LiveStateCache
from liveboard.services.progression_controller import ProgressionController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["live-events"])


# =============================================================================
# Collaborators
# =============================================================================

_live_cache = LiveStateCache(ttl_seconds=feature_flags.LIVE_CACHE_TTL_SECONDS)


def get_live_cache() -> LiveStateCache:
    return _live_cache


def get_audit_sink() -> AuditSink:
    if feature_flags.FEATURE_AUDIT_LOG:
        return DatabaseAuditSink(AsyncSessionLocal)
    return LoggingAuditSink()


def get_controller(
    db: AsyncSession = Depends(get_db),
    audit: AuditSink = Depends(get_audit_sink),
    cache: LiveStateCache = Depends(get_live_cache),
) -> ProgressionController:
    return ProgressionController(db, audit=audit, cache=cache)


def respond(result: OperationResult):
    """Success results pass through; failures become the error envelope."""
    if result.success:
        return result.model_dump()
    return JSONResponse(
        status_code=http_status_for(result.code),
        content=to_error_response(result).model_dump()
    )


# =============================================================================
# Commands (staff only)
# =============================================================================

@router.post("/commands")
async def run_command(
    payload: Dict[str, Any] = Body(...),
    actor: Actor = Depends(require_staff),
    controller: ProgressionController = Depends(get_controller),
):
    """
    Execute one live command.

    The body is one of: move_to_round, eliminate, set_winners,
    complete_event, reset_progress, adjust_points, add_rounds, selected by
    its `action` field.
    """
    try:
        command = live_command_adapter.validate_python(payload)
    except ValidationError as e:
        logger.warning(f"Rejected live command from user {actor.user_id}: {e.error_count()} validation error(s)")
        return JSONResponse(
            status_code=422,
            content=ErrorResponse(
                error="Validation Error",
                message="Invalid command",
                code=ErrorCode.VALIDATION_ERROR,
                details={"errors": e.errors(include_url=False, include_context=False)}
            ).model_dump()
        )

    logger.info(f"User {actor.user_id} issued {command.action} for event {command.event_id}")
    return respond(await controller.dispatch(command, actor.user_id))


# =============================================================================
# Read views
# =============================================================================

@router.get("/tournaments/{tournament_id}/leaderboard")
async def tournament_leaderboard(
    tournament_id: int,
    actor: Actor = Depends(get_current_actor),
    controller: ProgressionController = Depends(get_controller),
):
    return respond(await controller.get_tournament_leaderboard(tournament_id))


@router.get("/{event_id}/live")
async def live_state(
    event_id: int,
    actor: Actor = Depends(get_current_actor),
    controller: ProgressionController = Depends(get_controller),
):
    """Full live board: rounds, registrations, ledger, winners."""
    return respond(await controller.get_live_state(event_id))


@router.get("/{event_id}/live/me")
async def member_live_state(
    event_id: int,
    actor: Actor = Depends(get_current_actor),
    controller: ProgressionController = Depends(get_controller),
):
    return respond(await controller.get_member_live_state(event_id, actor.user_id))


@router.get("/{event_id}/results")
async def event_results(
    event_id: int,
    actor: Actor = Depends(get_current_actor),
    controller: ProgressionController = Depends(get_controller),
):
    return respond(await controller.get_event_results(event_id))


@router.get("/{event_id}/rounds")
async def event_rounds(
    event_id: int,
    actor: Actor = Depends(get_current_actor),
    controller: ProgressionController = Depends(get_controller),
):
    return respond(await controller.list_rounds(event_id))


@router.get("/{event_id}/points")
async def event_points(
    event_id: int,
    actor: Actor = Depends(get_current_actor),
    controller: ProgressionController = Depends(get_controller),
):
    return respond(await controller.get_event_points(event_id))


@router.get("/{event_id}/audit")
async def event_audit(
    event_id: int,
    actor: Actor = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    entries = await list_audit_entries(db, event_id)
    return {
        "success": True,
        "message": "Audit trail",
        "data": {
            "entries": [e.to_dict() for e in entries],
            "chain_valid": verify_chain(entries),
        },
    }


# =============================================================================
# Invalidation feed
# =============================================================================

@router.websocket("/{event_id}/live/ws")
async def live_updates(
    websocket: WebSocket,
    event_id: int,
    token: str = Query(..., description="JWT access token"),
    cache: LiveStateCache = Depends(get_live_cache),
):
    """
    Push a message each time the event's live view goes stale.

    Message Format (Server -> Client):
    {
        "type": "connected" | "invalidated" | "pong" | "error",
        "data": {...},
        "timestamp": "2026-02-14T10:30:00"
    }

    Message Format (Client -> Server):
    {"type": "ping"}

    Clients refetch GET /{event_id}/live on "invalidated". The connection
    is released as soon as the client disconnects.
    """
    actor = actor_from_token(token)
    await websocket.accept()

    if actor is None:
        await websocket.send_json({
            "type": "error",
            "data": {"message": "Authentication failed"},
            "timestamp": datetime.utcnow().isoformat()
        })
        await websocket.close(code=4001, reason="Authentication failed")
        return

    await websocket.send_json({
        "type": "connected",
        "data": {"event_id": event_id, "version": cache.version(event_id)},
        "timestamp": datetime.utcnow().isoformat()
    })
    logger.info(f"User {actor.user_id} subscribed to live updates of event {event_id}")

    async def forward_invalidations():
        async for message in cache.subscribe(event_id):
            await websocket.send_json({
                "type": "invalidated",
                "data": message,
                "timestamp": datetime.utcnow().isoformat()
            })

    async def read_client():
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({
                    "type": "error",
                    "data": {"message": "Messages must be JSON objects"},
                    "timestamp": datetime.utcnow().isoformat()
                })
                continue

            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({
                    "type": "pong",
                    "data": {"server_time": datetime.utcnow().isoformat()},
                    "timestamp": datetime.utcnow().isoformat()
                })

    # The subscriber registers before any client message is handled
    tasks = [
        asyncio.create_task(forward_invalidations()),
        asyncio.create_task(read_client()),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                raise error
        if tasks[0] in done and tasks[1] not in done:
            # Cache closed on shutdown
            await websocket.close(code=1001, reason="Server shutting down")
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(
            f"User {actor.user_id} left live updates of event {event_id} "
            f"({cache.subscriber_count(event_id)} still listening)"
        )
