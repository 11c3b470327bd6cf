"""
Progression Controller

The only writer of the progress ledger, the winner board and tournament
points. Every public coroutine is one request-scoped unit of work that
commits or rolls back as a whole and returns an OperationResult; no
exception crosses this boundary.

Authorization has already been decided by the caller (see rbac.py).

Concurrency model:
- move / eliminate are idempotent, so concurrent staff edits converge
  without locks: re-sending a move is a no-op, eliminating an entry that
  is already eliminated or has moved away affects zero rows.
- set_winners, complete_event and reset_progress lock the event row
  (FOR UPDATE where the dialect supports it) and run in one transaction.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any, Callable, Awaitable, Union

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from liveboard.config.feature_flags import feature_flags
from liveboard.errors import ErrorCode, OperationResult, ok, fail, new_log_id
from liveboard.exceptions import (
    ProgressionError,
    InvalidRoundError,
    NoWinnersProvidedError,
    DuplicateWinnerPositionError,
    EventNotFoundError,
    EventAlreadyCompletedError,
    EventNotCompletedError,
    EventLockedError,
    PointsEntryNotFoundError,
    TournamentNotFoundError,
)
from liveboard.orm.event import Event, EventStatus, Tournament
from liveboard.orm.event_progress import EventProgress
from liveboard.orm.event_round import EventRound
from liveboard.schemas.live_event import (
    MoveToRoundCommand,
    EliminateCommand,
    SetWinnersCommand,
    CompleteEventCommand,
    ResetProgressCommand,
    AdjustPointsCommand,
    AddRoundsCommand,
    WinnerInput,
    RoundInput,
    MatchResultInput,
)
from liveboard.services.audit_service import AuditSink, AuditAction, LoggingAuditSink
from liveboard.services.live_cache import LiveStateCache
from liveboard.services.participant_directory import (
    Participant, ParticipantDirectory, from_registration, matches
)
from liveboard.services.progress_ledger import ProgressLedger
from liveboard.services.round_registry import RoundRegistry
from liveboard.services.scoring_engine import ScoringEngine
from liveboard.services.tournament_points_service import (
    list_event_points, get_points_entry, apply_adjustment, tournament_leaderboard
)
from liveboard.services.winner_board import WinnerBoard

logger = logging.getLogger(__name__)


@dataclass
class Outcome:
    """What a unit of work produced, before commit."""
    result: OperationResult
    changed: bool = False
    audit: Dict[str, Any] = field(default_factory=dict)


def _noop(message: str, **data) -> Outcome:
    return Outcome(result=ok(message, data={"changed": False, **data}), changed=False)


class ProgressionController:

    def __init__(
        self,
        db: AsyncSession,
        audit: Optional[AuditSink] = None,
        cache: Optional[LiveStateCache] = None,
        scoring_enabled: Optional[bool] = None
    ):
        self.db = db
        self.audit = audit or LoggingAuditSink()
        self.cache = cache
        self.scoring_enabled = (
            feature_flags.FEATURE_TOURNAMENT_SCORING if scoring_enabled is None else scoring_enabled
        )

        self.directory = ParticipantDirectory(db)
        self.registry = RoundRegistry(db)
        self.ledger = ProgressLedger(db)
        self.board = WinnerBoard(db)
        self.scoring = ScoringEngine(db)

    # ==========================================================================
    # Unit-of-work plumbing
    # ==========================================================================

    async def _execute(
        self,
        action: str,
        event_id: int,
        actor_id: Optional[int],
        work: Callable[[], Awaitable[Outcome]],
        retry_on_conflict: bool = False,
        notify: bool = True
    ) -> Union[OperationResult, Outcome]:
        """
        Run `work`, commit, then audit and invalidate on effective change.

        With notify=False the committed Outcome itself is returned and the
        caller is responsible for the post-commit signals.
        """
        attempts = 2 if retry_on_conflict else 1
        for attempt in range(attempts):
            try:
                outcome = await work()
                await self.db.commit()
                break
            except IntegrityError as e:
                await self.db.rollback()
                if attempt + 1 < attempts:
                    logger.info(f"{action} on event {event_id} lost a race, re-reading ledger")
                    continue
                return self._persistence_failure(action, event_id, e)
            except ProgressionError as e:
                await self.db.rollback()
                logger.warning(f"{action} rejected for event {event_id}: {e.message}")
                return fail(e.message, e.code, details=e.details)
            except ValidationError as e:
                await self.db.rollback()
                logger.warning(f"{action} rejected for event {event_id}: invalid input")
                return fail(
                    "Invalid input",
                    ErrorCode.VALIDATION_ERROR,
                    details={"errors": e.errors(include_url=False, include_context=False)}
                )
            except SQLAlchemyError as e:
                await self.db.rollback()
                return self._persistence_failure(action, event_id, e)
            except Exception as e:
                await self.db.rollback()
                log_id = new_log_id()
                logger.exception(f"[{log_id}] Unexpected error in {action} for event {event_id}")
                return fail(
                    "An internal error occurred. Please try again later.",
                    ErrorCode.INTERNAL_ERROR,
                    details={"log_id": log_id}
                )

        if not notify:
            return outcome

        if outcome.changed:
            await self._after_mutation(action, event_id, actor_id, outcome.audit)
        else:
            logger.info(f"{action} on event {event_id} was a no-op: {outcome.result.message}")
        return outcome.result

    def _persistence_failure(self, action: str, event_id: int, error: Exception) -> OperationResult:
        log_id = new_log_id()
        logger.error(f"[{log_id}] Persistence failure in {action} for event {event_id}: {type(error).__name__}: {str(error)}")
        return fail(
            "The operation could not be saved. Please try again.",
            ErrorCode.PERSISTENCE_ERROR,
            details={"log_id": log_id}
        )

    async def _after_mutation(
        self,
        action: str,
        event_id: int,
        actor_id: Optional[int],
        metadata: Dict[str, Any]
    ) -> None:
        """Audit and cache signals. Neither may fail the primary operation."""
        logger.info(f"{action} applied to event {event_id} by actor {actor_id}")
        try:
            await self.audit.record(action, actor_id, event_id, metadata)
        except Exception as e:
            logger.error(f"Audit sink raised for {action} on event {event_id}: {type(e).__name__}: {str(e)}")

        if self.cache is not None:
            try:
                await self.cache.invalidate(event_id)
            except Exception as e:
                logger.error(f"Cache invalidation failed for event {event_id}: {type(e).__name__}: {str(e)}")

    async def _read(self, name: str, key: Any, work: Callable[[], Awaitable[OperationResult]]) -> OperationResult:
        try:
            return await work()
        except ProgressionError as e:
            logger.warning(f"{name} failed for {key}: {e.message}")
            return fail(e.message, e.code, details=e.details)
        except SQLAlchemyError as e:
            return self._persistence_failure(name, key, e)
        except Exception:
            log_id = new_log_id()
            logger.exception(f"[{log_id}] Unexpected error in {name} for {key}")
            return fail(
                "An internal error occurred. Please try again later.",
                ErrorCode.INTERNAL_ERROR,
                details={"log_id": log_id}
            )

    async def _load_event(self, event_id: int, lock: bool = False) -> Event:
        query = select(Event).where(Event.id == event_id)
        if lock:
            query = query.with_for_update()

        result = await self.db.execute(query)
        event = result.scalar_one_or_none()
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    @staticmethod
    def _ensure_editable(event: Event) -> None:
        if event.is_completed:
            raise EventLockedError(event.id)

    # ==========================================================================
    # Ledger operations
    # ==========================================================================

    async def move_to_round(
        self,
        event_id: int,
        participant: Participant,
        from_round_id: Optional[int],
        to_round_id: int,
        actor_id: Optional[int] = None
    ) -> OperationResult:
        """
        Place a participant in `to_round_id`.

        Afterwards exactly one live entry exists for the participant, pointing
        at the target round. Re-sending a move that already took effect is a
        no-op and leaves moved_at untouched.
        """
        async def work() -> Outcome:
            event = await self._load_event(event_id)
            target = await self.registry.get_round(event_id, to_round_id)
            if target is None:
                raise InvalidRoundError(event_id, to_round_id)

            resolved = await self.directory.resolve(event_id, participant)
            if from_round_id is not None and from_round_id == to_round_id:
                return _noop("Participant is already in this round", round_id=to_round_id)
            self._ensure_editable(event)

            entry = await self.ledger.get_entry(event_id, resolved, lock=True)

            if entry is not None and entry.round_id == to_round_id and not entry.eliminated:
                return _noop("Participant is already in this round", round_id=to_round_id)

            previous_round_id = entry.round_id if entry is not None else None
            if from_round_id is not None and previous_round_id != from_round_id:
                logger.info(
                    f"{resolved.key} expected in round {from_round_id} of event {event_id} "
                    f"but ledger has {previous_round_id}; superseding"
                )

            entry = await self.ledger.place(
                event_id, resolved, to_round_id, datetime.utcnow(), existing=entry
            )
            return Outcome(
                result=ok(
                    f"Moved to {target.title}",
                    data={
                        "changed": True,
                        "progress_id": entry.id,
                        "participant": resolved.key,
                        "round_id": target.id,
                        "round_number": target.round_number,
                        "moved_at": entry.moved_at.isoformat(),
                    }
                ),
                changed=True,
                audit={
                    "participant": resolved.key,
                    "from_round_id": previous_round_id,
                    "to_round_id": target.id,
                },
            )

        return await self._execute(
            AuditAction.MOVE_TO_ROUND, event_id, actor_id, work, retry_on_conflict=True
        )

    async def eliminate(
        self,
        event_id: int,
        participant: Participant,
        round_id: int,
        actor_id: Optional[int] = None
    ) -> OperationResult:
        """
        Mark the participant's entry in `round_id` as eliminated.

        No matching active entry is a silent no-op, so double submissions and
        races with a concurrent move never surface as failures.
        """
        async def work() -> Outcome:
            event = await self._load_event(event_id)
            self._ensure_editable(event)

            rows = await self.ledger.mark_eliminated(event_id, participant, round_id, datetime.utcnow())
            if rows == 0:
                return _noop("No active entry in this round; nothing to eliminate", round_id=round_id)

            return Outcome(
                result=ok(
                    "Participant eliminated successfully",
                    data={"changed": True, "participant": participant.key, "round_id": round_id}
                ),
                changed=True,
                audit={"participant": participant.key, "round_id": round_id},
            )

        return await self._execute(AuditAction.ELIMINATE, event_id, actor_id, work)

    async def set_winners(
        self,
        event_id: int,
        winners: List[Union[WinnerInput, Dict[str, Any]]],
        actor_id: Optional[int] = None
    ) -> OperationResult:
        """
        Replace the winner board of the event.

        Entries without a participant are dropped; if nothing remains the call
        is rejected and the existing board is left as it was.
        """
        async def work() -> Outcome:
            parsed = [
                w if isinstance(w, WinnerInput) else WinnerInput.model_validate(w)
                for w in winners
            ]
            placements = [
                (w.position, w.participant, w.prize)
                for w in parsed
                if w.participant is not None
            ]
            if not placements:
                raise NoWinnersProvidedError()

            seen, duplicates = set(), set()
            for position, _, _ in placements:
                if position in seen:
                    duplicates.add(position)
                seen.add(position)
            if duplicates:
                raise DuplicateWinnerPositionError(duplicates)

            event = await self._load_event(event_id, lock=True)
            self._ensure_editable(event)

            rows = await self.board.replace(event_id, placements)
            return Outcome(
                result=ok(
                    "Winners set successfully",
                    data={
                        "changed": True,
                        "winners": [
                            {"position": position, "participant": participant.key, "prize": prize}
                            for position, participant, prize in placements
                        ],
                    }
                ),
                changed=True,
                audit={
                    "winners": {str(row.position): (row.team_id, row.user_id) for row in rows},
                },
            )

        return await self._execute(AuditAction.SET_WINNERS, event_id, actor_id, work)

    # ==========================================================================
    # Lifecycle operations
    # ==========================================================================

    async def complete_event(self, event_id: int, actor_id: Optional[int] = None) -> OperationResult:
        """
        Mark the event completed, then score it if it is tournament-linked.

        The status change commits first. A scoring failure does not roll it
        back: the result is a SCORING_FAILED failure and the way back is
        reset_progress.
        """
        async def work() -> Outcome:
            event = await self._load_event(event_id, lock=True)
            if event.is_completed:
                raise EventAlreadyCompletedError(event_id)

            event.status = EventStatus.COMPLETED.value
            event.completed_at = datetime.utcnow()
            await self.db.flush()

            return Outcome(
                result=ok(
                    "Event completed successfully",
                    data={"changed": True, "status": event.status, "completed_at": event.completed_at.isoformat()}
                ),
                changed=True,
                audit={"is_tournament": bool(event.is_tournament)},
            )

        completed = await self._execute(
            AuditAction.COMPLETE_EVENT, event_id, actor_id, work, notify=False
        )
        if isinstance(completed, OperationResult):
            return completed

        result = completed.result
        metadata = dict(completed.audit)

        if metadata["is_tournament"] and self.scoring_enabled:
            scored = await self._score(event_id)
            metadata["scored"] = scored is not None
            if scored is None:
                result = fail(
                    "Event completed, but tournament points could not be awarded",
                    ErrorCode.SCORING_FAILED,
                    data=result.data,
                )
            else:
                metadata["points_rows"] = len(scored)
                result = ok(
                    "Event completed and tournament points awarded",
                    data={**result.data, "points": scored}
                )

        await self._after_mutation(AuditAction.COMPLETE_EVENT, event_id, actor_id, metadata)
        return result

    async def _score(self, event_id: int) -> Optional[List[Dict[str, Any]]]:
        """Best-effort scoring in its own transaction. None on failure."""
        try:
            event = await self._load_event(event_id)
            rows = await self.scoring.score_event(event)
            summary = [
                {"participant": f"team:{r.team_id}" if r.team_id else f"user:{r.user_id}",
                 "points": r.points, "reason": r.reason}
                for r in rows
            ]
            await self.db.commit()
            return summary
        except Exception as e:
            await self.db.rollback()
            log_id = new_log_id()
            logger.error(f"[{log_id}] Scoring failed for completed event {event_id}: {type(e).__name__}: {str(e)}")
            return None

    async def reset_progress(self, event_id: int, actor_id: Optional[int] = None) -> OperationResult:
        """
        Delete all progress, winners and points of the event and set it back
        to ongoing. Destructive and total.
        """
        async def work() -> Outcome:
            event = await self._load_event(event_id, lock=True)

            progress = await self.ledger.clear(event_id)
            winners = await self.board.clear(event_id)
            points = await self.scoring.clear(event_id)

            event.status = EventStatus.ONGOING.value
            event.completed_at = None
            await self.db.flush()

            counts = {"progress": progress, "winners": winners, "points": points}
            return Outcome(
                result=ok("Event progress reset successfully", data={"changed": True, "deleted": counts}),
                changed=True,
                audit={"deleted": counts},
            )

        return await self._execute(AuditAction.RESET_PROGRESS, event_id, actor_id, work)

    # ==========================================================================
    # Points and rounds
    # ==========================================================================

    async def adjust_points(
        self,
        event_id: int,
        participant: Participant,
        points: int,
        match_result: Optional[MatchResultInput] = None,
        actor_id: Optional[int] = None
    ) -> OperationResult:
        """Explicit correction of an existing points row."""
        async def work() -> Outcome:
            await self._load_event(event_id)

            entry = await get_points_entry(self.db, event_id, participant)
            if entry is None:
                raise PointsEntryNotFoundError(event_id, participant.key)

            if match_result is not None:
                apply_adjustment(
                    entry, points,
                    wins=match_result.wins, losses=match_result.losses, draws=match_result.draws,
                    record_match=True
                )
            else:
                apply_adjustment(entry, points)
            await self.db.flush()

            return Outcome(
                result=ok(
                    "Tournament points updated successfully",
                    data={"changed": True, "participant": participant.key, "points": entry.points}
                ),
                changed=True,
                audit={"participant": participant.key, "delta": points},
            )

        return await self._execute(AuditAction.ADJUST_POINTS, event_id, actor_id, work)

    async def add_rounds(
        self,
        event_id: int,
        rounds: List[Union[RoundInput, Dict[str, Any]]],
        actor_id: Optional[int] = None
    ) -> OperationResult:
        """Append rounds; numbers already taken are skipped."""
        async def work() -> Outcome:
            await self._load_event(event_id)

            parsed = [r if isinstance(r, RoundInput) else RoundInput.model_validate(r) for r in rounds]
            added = await self.registry.add_rounds(event_id, [r.model_dump() for r in parsed])

            data = {"changed": bool(added), "added": len(added), "rounds": [r.to_dict() for r in added]}
            if not added:
                return Outcome(result=ok("No new rounds to add", data=data))
            return Outcome(
                result=ok(f"Added {len(added)} round(s)", data=data),
                changed=True,
                audit={"round_numbers": [r.round_number for r in added]},
            )

        return await self._execute(
            AuditAction.ADD_ROUNDS, event_id, actor_id, work, retry_on_conflict=True
        )

    # ==========================================================================
    # Command dispatch
    # ==========================================================================

    async def dispatch(self, command, actor_id: Optional[int] = None) -> OperationResult:
        """Route one command of the closed command set to its operation."""
        if isinstance(command, MoveToRoundCommand):
            return await self.move_to_round(
                command.event_id, command.participant, command.from_round_id, command.to_round_id, actor_id
            )
        if isinstance(command, EliminateCommand):
            return await self.eliminate(command.event_id, command.participant, command.round_id, actor_id)
        if isinstance(command, SetWinnersCommand):
            return await self.set_winners(command.event_id, command.winners, actor_id)
        if isinstance(command, CompleteEventCommand):
            return await self.complete_event(command.event_id, actor_id)
        if isinstance(command, ResetProgressCommand):
            return await self.reset_progress(command.event_id, actor_id)
        if isinstance(command, AdjustPointsCommand):
            return await self.adjust_points(
                command.event_id, command.participant, command.points, command.match_result, actor_id
            )
        if isinstance(command, AddRoundsCommand):
            return await self.add_rounds(command.event_id, command.rounds, actor_id)
        return fail(f"Unsupported command: {type(command).__name__}", ErrorCode.INVALID_INPUT)

    # ==========================================================================
    # Read operations
    # ==========================================================================

    @staticmethod
    def _board(registrations, progress: List[EventProgress], rounds: List[EventRound]) -> Dict[str, Any]:
        """
        Group registered participants by placement.

        Derived from the ledger alone: no entry or no round means unassigned,
        an eliminated entry is listed under eliminated only.
        """
        by_round = {r.id: [] for r in rounds}
        unassigned, eliminated = [], []

        for registration in registrations:
            participant = from_registration(registration)
            entry = next((p for p in progress if matches(p, participant)), None)

            if entry is not None and entry.eliminated:
                eliminated.append(participant.key)
            elif entry is None or entry.round_id is None or entry.round_id not in by_round:
                unassigned.append(participant.key)
            else:
                by_round[entry.round_id].append(participant.key)

        return {
            "unassigned": unassigned,
            "rounds": {str(round_id): keys for round_id, keys in by_round.items()},
            "eliminated": eliminated,
        }

    async def get_live_state(self, event_id: int, use_cache: bool = True) -> OperationResult:
        """
        Event header, ordered rounds, registrations, full ledger and winners.

        The single query used by staff boards and read-only viewers.
        """
        async def work() -> OperationResult:
            if use_cache and self.cache is not None:
                cached = self.cache.get(event_id)
                if cached is not None:
                    return ok("Live event data", data=cached)
            version = self.cache.version(event_id) if self.cache is not None else None

            event = await self._load_event(event_id)
            rounds = await self.registry.list_rounds(event_id)
            registrations = await self.directory.list_registrations(event_id)
            progress = await self.ledger.list_entries(event_id)
            winners = await self.board.list_winners(event_id)

            snapshot = {
                "event": event.to_dict(),
                "rounds": [r.to_dict() for r in rounds],
                "registrations": [r.to_dict() for r in registrations],
                "progress": [p.to_dict() for p in progress],
                "winners": [w.to_dict() for w in winners],
                "board": self._board(registrations, progress, rounds),
            }
            if self.cache is not None:
                self.cache.put(event_id, snapshot, version)
            return ok("Live event data", data=snapshot)

        return await self._read("get_live_state", event_id, work)

    async def get_member_live_state(self, event_id: int, user_id: int) -> OperationResult:
        """
        Read-only member view: winners appear once the event is completed,
        tournament points once a tournament-linked event is completed.
        """
        async def work() -> OperationResult:
            event = await self._load_event(event_id)
            rounds = await self.registry.list_rounds(event_id)
            progress = await self.ledger.list_entries(event_id, newest_first=True)
            registration = await self.directory.find_for_user(event_id, user_id)

            winners = None
            points = None
            if event.is_completed:
                winners = [w.to_dict() for w in await self.board.list_winners(event_id)]
                if event.is_tournament:
                    points = [p.to_dict() for p in await list_event_points(self.db, event_id)]

            return ok("Live event data", data={
                "event": event.to_dict(),
                "rounds": [r.to_dict() for r in rounds],
                "progress": [p.to_dict() for p in progress],
                "user_registration": registration.to_dict() if registration else None,
                "winners": winners,
                "tournament_points": points,
            })

        return await self._read("get_member_live_state", event_id, work)

    async def get_event_results(self, event_id: int) -> OperationResult:
        """Results view: every registration regardless of status."""
        async def work() -> OperationResult:
            event = await self._load_event(event_id)
            rounds = await self.registry.list_rounds(event_id)
            registrations = await self.directory.list_registrations(event_id, registered_only=False)
            winners = await self.board.list_winners(event_id)
            progress = await self.ledger.list_entries(event_id)

            return ok("Event results", data={
                "event": event.to_dict(),
                "rounds": [r.to_dict() for r in rounds],
                "registrations": [r.to_dict() for r in registrations],
                "winners": [w.to_dict() for w in winners],
                "progress": [p.to_dict() for p in progress],
            })

        return await self._read("get_event_results", event_id, work)

    async def get_event_points(self, event_id: int) -> OperationResult:
        async def work() -> OperationResult:
            event = await self._load_event(event_id)
            if not event.is_completed:
                raise EventNotCompletedError(event_id, event.status)
            rows = await list_event_points(self.db, event_id)
            return ok("Event points", data={"points": [r.to_dict() for r in rows]})

        return await self._read("get_event_points", event_id, work)

    async def get_tournament_leaderboard(self, tournament_id: int) -> OperationResult:
        async def work() -> OperationResult:
            tournament = await self.db.get(Tournament, tournament_id)
            if tournament is None:
                raise TournamentNotFoundError(tournament_id)
            rows = await tournament_leaderboard(self.db, tournament_id)
            return ok("Tournament leaderboard", data={"tournament": tournament.to_dict(), "leaderboard": rows})

        return await self._read("get_tournament_leaderboard", tournament_id, work)

    async def list_rounds(self, event_id: int) -> OperationResult:
        async def work() -> OperationResult:
            await self._load_event(event_id)
            rounds = await self.registry.list_rounds(event_id)
            return ok("Event rounds", data={"rounds": [r.to_dict() for r in rounds]})

        return await self._read("list_rounds", event_id, work)
