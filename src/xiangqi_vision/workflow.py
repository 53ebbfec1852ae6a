"""
Recognition workflow: one photograph in, one classified outcome out.

States move ``IDLE -> REQUESTING -> SUCCEEDED | FAILED``. Every ``submit``
bumps a generation counter and tags the new attempt with it; a response is
applied only while its attempt's generation is still current, so the last
submitted image always wins even when an older call answers late. A new
submit also cancels the superseded task, keeping one oracle call in flight.

Only transient oracle failures (network faults, rate limits, timeouts) are
retried, with a bounded budget. A readable but illegal position is a result
in its own right and is never retried automatically.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from .normalizer import NormalizeError, NormalizeReason, normalize_reading
from .notation import encode
from .oracle import OracleClient, OracleError, OracleErrorKind
from .position import Position
from .validator import ValidationViolation, validate


class WorkflowState(Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Outcome(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    PARSE_FAILED = "parse_failed"
    ILLEGAL_POSITION = "illegal_position"
    ORACLE_ERROR = "oracle_error"


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    backoff: tuple[float, ...] = (0.5, 1.5)
    timeout: float = 30.0

    def delay(self, retry: int) -> float:
        """Backoff before the ``retry``-th retry (0-based); reuses the last step."""
        if not self.backoff:
            return 0.0
        return self.backoff[min(retry, len(self.backoff) - 1)]


@dataclass
class RecognitionAttempt:
    image: bytes
    mime_type: str
    generation: int
    raw_payload: object | None = None
    parsed_position: Position | None = None
    explanation: str | None = None
    violations: list[ValidationViolation] = field(default_factory=list)
    outcome: Outcome = Outcome.PENDING
    calls: int = 0


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of the workflow for the presentation layer."""

    state: WorkflowState
    generation: int = 0
    position: Position | None = None
    notation: str | None = None
    violations: tuple[ValidationViolation, ...] = ()
    error_class: Outcome | None = None
    oracle_error: OracleErrorKind | None = None
    normalize_reason: NormalizeReason | None = None
    detail: str = ""
    explanation: str | None = None


Observer = Callable[[Snapshot], None]
Sleep = Callable[[float], Awaitable[object]]


class RecognitionWorkflow:
    def __init__(
        self,
        client: OracleClient,
        policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._generation = 0
        self._attempt: RecognitionAttempt | None = None
        self._last_image: tuple[bytes, str] | None = None
        self._snapshot = Snapshot(WorkflowState.IDLE)
        self._observers: list[Observer] = []
        self._task: asyncio.Task[Snapshot] | None = None

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def attempt(self) -> RecognitionAttempt | None:
        return self._attempt

    def subscribe(self, callback: Observer) -> Callable[[], None]:
        """Call ``callback`` on every state change; returns an unsubscribe function."""
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _publish(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        for callback in list(self._observers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception(
                    "Observer failed | gen={} | state={}",
                    snapshot.generation,
                    snapshot.state.value,
                )

    def _is_current(self, attempt: RecognitionAttempt) -> bool:
        return attempt is self._attempt and attempt.generation == self._generation

    # ── UI-facing transitions ────────────────────────────────────────────────

    def submit(self, image: bytes, mime_type: str = "image/jpeg") -> asyncio.Task[Snapshot] | None:
        """Start recognizing ``image``; must be called from a running event loop.

        An empty image is ignored. Any attempt still in flight is superseded.
        """
        if not image:
            logger.warning("Submit ignored | empty image | state={}", self._snapshot.state.value)
            return None
        loop = asyncio.get_running_loop()

        previous = self._attempt
        if previous is not None and previous.outcome is Outcome.PENDING:
            logger.info("Superseding in-flight attempt | gen={}", previous.generation)
        self._cancel_task()

        self._generation += 1
        attempt = RecognitionAttempt(bytes(image), mime_type, self._generation)
        self._attempt = attempt
        self._last_image = (attempt.image, mime_type)
        logger.info(
            "Recognition submitted | gen={} | bytes={} | mime={}",
            attempt.generation,
            len(attempt.image),
            mime_type,
        )
        self._publish(Snapshot(WorkflowState.REQUESTING, attempt.generation))
        self._task = loop.create_task(self._run(attempt))
        return self._task

    def retry(self) -> asyncio.Task[Snapshot] | None:
        """Resubmit the most recent image from scratch."""
        if self._last_image is None:
            logger.warning("Retry ignored | no image submitted")
            return None
        image, mime_type = self._last_image
        return self.submit(image, mime_type)

    def reset(self) -> None:
        """Back to IDLE; any in-flight call is cancelled and its response discarded."""
        self._cancel_task()
        self._generation += 1
        self._attempt = None
        self._last_image = None
        logger.debug("Workflow reset | gen={}", self._generation)
        self._publish(Snapshot(WorkflowState.IDLE, self._generation))

    async def recognize(self, image: bytes, mime_type: str = "image/jpeg") -> Snapshot:
        """Submit ``image`` and wait for its attempt to finish."""
        task = self.submit(image, mime_type)
        if task is None:
            return self._snapshot
        try:
            return await task
        except asyncio.CancelledError:
            # Superseded by a later submit or a reset; anything else propagates.
            if task is self._task:
                raise
            return self._snapshot

    def _cancel_task(self) -> None:
        """Cancel the running attempt so at most one oracle call is outstanding."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    # ── Attempt execution ────────────────────────────────────────────────────

    async def _call(self, attempt: RecognitionAttempt) -> object:
        timeout = self.policy.timeout
        try:
            return await asyncio.wait_for(
                self._client.request_recognition(attempt.image, attempt.mime_type),
                timeout=timeout,
            )
        except OracleError:
            raise
        except asyncio.TimeoutError as e:
            raise OracleError(OracleErrorKind.TRANSIENT, f"no response within {timeout}s") from e
        except Exception as e:
            logger.exception("Unexpected oracle client failure | gen={}", attempt.generation)
            raise OracleError(OracleErrorKind.TRANSIENT, f"{type(e).__name__}: {e}") from e

    async def _run(self, attempt: RecognitionAttempt) -> Snapshot:
        try:
            return await self._attempt_loop(attempt)
        except asyncio.CancelledError:
            if self._is_current(attempt):
                raise
            logger.debug("Superseded attempt cancelled | gen={}", attempt.generation)
            return self._snapshot

    async def _attempt_loop(self, attempt: RecognitionAttempt) -> Snapshot:
        retries = 0
        while True:
            attempt.calls += 1
            logger.debug("Oracle call | gen={} | call={}", attempt.generation, attempt.calls)
            try:
                payload = await self._call(attempt)
            except OracleError as e:
                error = e
            else:
                if self._is_current(attempt):
                    self._apply_payload(attempt, payload)
                else:
                    logger.warning(
                        "Discarding stale response | gen={} | current={}",
                        attempt.generation,
                        self._generation,
                    )
                return self._snapshot

            if not self._is_current(attempt):
                logger.warning(
                    "Discarding stale oracle error | gen={} | kind={}",
                    attempt.generation,
                    error.kind.value,
                )
                return self._snapshot

            if error.kind is OracleErrorKind.TRANSIENT and retries < self.policy.max_retries:
                delay = self.policy.delay(retries)
                retries += 1
                logger.warning(
                    "Oracle transient failure | gen={} | retry={}/{} | delay={:.2f}s | {}",
                    attempt.generation,
                    retries,
                    self.policy.max_retries,
                    delay,
                    error.detail,
                )
                await self._sleep(delay)
                if not self._is_current(attempt):
                    return self._snapshot
                continue

            attempt.outcome = Outcome.ORACLE_ERROR
            logger.error(
                "Recognition failed | gen={} | oracle_error={} | calls={} | {}",
                attempt.generation,
                error.kind.value,
                attempt.calls,
                error.detail,
            )
            self._publish(
                Snapshot(
                    WorkflowState.FAILED,
                    attempt.generation,
                    error_class=Outcome.ORACLE_ERROR,
                    oracle_error=error.kind,
                    detail=error.detail,
                )
            )
            return self._snapshot

    def _apply_payload(self, attempt: RecognitionAttempt, payload: object) -> None:
        attempt.raw_payload = payload
        try:
            reading = normalize_reading(payload)
            violations = validate(reading.position)
        except NormalizeError as e:
            logger.info(
                "Recognition unreadable | gen={} | reason={} | {}",
                attempt.generation,
                e.reason.value,
                e.detail,
            )
            self._fail_unreadable(attempt, e.detail, e.reason)
            return
        except Exception as e:
            logger.exception("Recognition payload unprocessable | gen={}", attempt.generation)
            self._fail_unreadable(attempt, f"{type(e).__name__}: {e}")
            return

        attempt.parsed_position = reading.position
        attempt.explanation = reading.explanation
        attempt.violations = violations

        if attempt.violations:
            attempt.outcome = Outcome.ILLEGAL_POSITION
            for v in attempt.violations:
                logger.debug(
                    "Violation | gen={} | {} | {}", attempt.generation, v.rule.value, v.detail
                )
            logger.info(
                "Recognition illegal | gen={} | violations={}",
                attempt.generation,
                len(attempt.violations),
            )
            self._publish(
                Snapshot(
                    WorkflowState.FAILED,
                    attempt.generation,
                    position=reading.position,
                    violations=tuple(attempt.violations),
                    error_class=Outcome.ILLEGAL_POSITION,
                    detail=f"{len(attempt.violations)} placement violation(s)",
                    explanation=reading.explanation,
                )
            )
            return

        attempt.outcome = Outcome.SUCCESS
        notation = encode(reading.position)
        logger.info(
            "Recognition succeeded | gen={} | calls={} | {}",
            attempt.generation,
            attempt.calls,
            notation,
        )
        self._publish(
            Snapshot(
                WorkflowState.SUCCEEDED,
                attempt.generation,
                position=reading.position,
                notation=notation,
                explanation=reading.explanation,
            )
        )

    def _fail_unreadable(
        self,
        attempt: RecognitionAttempt,
        detail: str,
        reason: NormalizeReason | None = None,
    ) -> None:
        attempt.outcome = Outcome.PARSE_FAILED
        self._publish(
            Snapshot(
                WorkflowState.FAILED,
                attempt.generation,
                error_class=Outcome.PARSE_FAILED,
                normalize_reason=reason,
                detail=detail,
            )
        )
