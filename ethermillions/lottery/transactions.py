"""
Transaction orchestration for user-initiated contract calls.

Drives buyTicket / drawNumbers from submission to confirmation:

    IDLE -> SUBMITTING -> AWAITING_CONFIRMATION -> CONFIRMED -> IDLE
                 |                 |
                 +-----------------+-----> FAILED -> IDLE

Only one action may be in flight. Every transition is published to listeners
together with the current status line.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..blockchain.contracts import ticket_price_wei
from ..errors import (
    LotteryClientError,
    NotConnected,
    OperationInProgress,
    Reverted,
    Unauthorized,
    UserCancelled,
)
from ..utils.logger import get_logger
from .models import (
    FailureKind,
    LotteryEvent,
    Role,
    Session,
    TransactionResult,
    TransactionState,
    TxAction,
    TxStatus,
)
from .status import describe, describe_rejection

if TYPE_CHECKING:
    from ..blockchain.client import LotteryContract

logger = get_logger(__name__)

# EIP-1193 "user rejected request"
USER_REJECTED_CODES = (4001, "ACTION_REJECTED")

TransitionListener = Callable[[TransactionState, str], None]


def _error_code(exc: Exception) -> Any:
    code = getattr(exc, "code", None)
    if code is not None:
        return code
    rpc_response = getattr(exc, "rpc_response", None)
    if isinstance(rpc_response, dict):
        return (rpc_response.get("error") or {}).get("code")
    if exc.args and isinstance(exc.args[0], dict):
        return exc.args[0].get("code")
    return None


def classify_failure(exc: Exception) -> Tuple[FailureKind, str]:
    """Split user cancellation from real faults, keeping the reason verbatim."""
    if isinstance(exc, UserCancelled) or _error_code(exc) in USER_REJECTED_CODES:
        return FailureKind.CANCELLED, getattr(exc, "reason", None) or "cancelled by user"
    if isinstance(exc, Reverted):
        return FailureKind.REVERTED, exc.reason or str(exc)
    reason = getattr(exc, "reason", None) or getattr(exc, "message", None) or str(exc)
    return FailureKind.SUBMISSION, str(reason)


class TransactionOrchestrator:
    """Runs one state-changing contract call at a time."""

    def __init__(
        self,
        session: Session,
        binding: "LotteryContract",
        *,
        role: Callable[[], Role] = Role,
        on_confirmed: Optional[Callable[[], Awaitable[Any]]] = None,
        price_wei: Optional[int] = None,
    ) -> None:
        self._session = session
        self._binding = binding
        self._role = role
        self._on_confirmed = on_confirmed
        self._price_wei = price_wei if price_wei is not None else ticket_price_wei()
        self._state = TransactionState()
        self._generation = 0
        self._listeners: List[TransitionListener] = []
        self.status_message = ""

    @property
    def state(self) -> TransactionState:
        return self._state

    def add_listener(self, callback: TransitionListener) -> None:
        self._listeners.append(callback)

    def _emit(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self._state, self.status_message)
            except Exception as exc:  # pragma: no cover
                logger.error("Transaction listener failed: %s", exc)

    def _transition(self, state: TransactionState, message: Optional[str] = None) -> None:
        self._state = state
        if message is None and state.action is not None:
            message = describe(state.action, state.status, state.reason, state.failure)
        if message is not None:
            self.status_message = message
        logger.info("Transaction %s -> %s", state.action.value if state.action else "-", state.status.value)
        self._emit()

    def reset(self) -> None:
        """Return to IDLE, detaching any in-flight action from the published state."""
        self._generation += 1
        self._state = TransactionState()
        self._emit()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    async def buy_ticket(self) -> TransactionResult:
        action = TxAction.BUY_TICKET
        if not self._session.connected or not self._binding.is_bound:
            return self._reject(action, NotConnected())
        if self._state.is_busy:
            return self._reject(action, OperationInProgress())
        return await self._run(action, lambda: self._binding.buy_ticket(self._price_wei))

    async def draw_numbers(self) -> TransactionResult:
        action = TxAction.DRAW_NUMBERS
        if not self._role().is_owner:
            return self._reject(action, Unauthorized())
        if not self._session.connected or not self._binding.is_bound:
            return self._reject(action, NotConnected())
        if self._state.is_busy:
            return self._reject(action, OperationInProgress())
        return await self._run(action, self._binding.draw_numbers)

    def _reject(self, action: TxAction, error: LotteryClientError) -> TransactionResult:
        logger.warning("%s refused: %s", action.value, error)
        self.status_message = describe_rejection(error)
        self._emit()
        return TransactionResult(action=action, status=TxStatus.FAILED, reason=str(error), error=error)

    async def _run(self, action: TxAction, submit: Callable[[], Awaitable[str]]) -> TransactionResult:
        # each run owns the published state until another run or a reset takes it
        self._generation += 1
        generation = self._generation
        self._transition(TransactionState(TxStatus.SUBMITTING, action))
        tx_hash: Optional[str] = None
        try:
            try:
                tx_hash = await submit()
            except Exception as exc:
                return self._fail(action, exc, tx_hash, generation)

            if generation == self._generation:
                self._transition(TransactionState(TxStatus.AWAITING_CONFIRMATION, action, tx_hash=tx_hash))

            try:
                receipt = await self._binding.wait_for_transaction(tx_hash)
            except Exception as exc:
                return self._fail(action, exc, tx_hash, generation)

            events = self._decode(receipt)
            result = TransactionResult(action=action, status=TxStatus.CONFIRMED, tx_hash=tx_hash, events=events)
            if generation != self._generation:
                logger.info("%s %s confirmed after the session was reset", action.value, tx_hash)
                return result

            self._transition(TransactionState(TxStatus.CONFIRMED, action, tx_hash=tx_hash))
            if self._on_confirmed is not None:
                try:
                    await self._on_confirmed()
                except Exception as exc:
                    logger.error("Post-confirmation refresh failed: %s", exc)
            if generation == self._generation:
                self._transition(TransactionState(), message=self.status_message)
            return result
        except asyncio.CancelledError:
            if generation == self._generation:
                self._state = TransactionState()
                self._emit()
            raise

    def _fail(
        self,
        action: TxAction,
        exc: Exception,
        tx_hash: Optional[str],
        generation: int,
    ) -> TransactionResult:
        failure, reason = classify_failure(exc)
        if failure == FailureKind.CANCELLED:
            logger.info("%s cancelled by user", action.value)
        else:
            logger.error("%s failed (%s): %s", action.value, failure.value, reason)

        result = TransactionResult(
            action=action,
            status=TxStatus.FAILED,
            tx_hash=tx_hash,
            reason=reason,
            failure=failure,
            error=exc,
        )
        if generation != self._generation:
            return result

        self._transition(TransactionState(TxStatus.FAILED, action, reason=reason, failure=failure, tx_hash=tx_hash))
        self._transition(TransactionState(), message=self.status_message)
        return result

    def _decode(self, receipt: Dict[str, Any]) -> List[LotteryEvent]:
        try:
            events = self._binding.decode_events(receipt)
        except Exception as exc:
            logger.warning("Could not decode receipt events: %s", exc)
            return []
        for event in events:
            logger.info("Event %s: %s", event.name, event.args)
        return events
