"""Core data models for the lottery client."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class TxAction(str, Enum):
    """User-initiated state-changing calls."""

    BUY_TICKET = "buy_ticket"
    DRAW_NUMBERS = "draw_numbers"


class TxStatus(str, Enum):
    """Lifecycle of a single user action."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class FailureKind(str, Enum):
    CANCELLED = "cancelled"
    SUBMISSION = "submission"
    REVERTED = "reverted"


@dataclass
class Session:
    """Connected wallet identity. Mutated only by the session manager."""

    account: Optional[str] = None
    connected: bool = False

    def reset(self) -> None:
        self.account = None
        self.connected = False


@dataclass(frozen=True)
class ContractSnapshot:
    """Aggregate public state of the lottery contract."""

    participant_count: int = 0
    last_winner: Optional[str] = None
    last_drawn_numbers: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Role:
    is_owner: bool = False
    owner_address: Optional[str] = None


@dataclass(frozen=True)
class TransactionState:
    """The single live state of the transaction orchestrator."""

    status: TxStatus = TxStatus.IDLE
    action: Optional[TxAction] = None
    reason: Optional[str] = None
    failure: Optional[FailureKind] = None
    tx_hash: Optional[str] = None

    @property
    def is_busy(self) -> bool:
        return self.status in (TxStatus.SUBMITTING, TxStatus.AWAITING_CONFIRMATION)

    @property
    def is_loading(self) -> bool:
        return self.status != TxStatus.IDLE


@dataclass
class LotteryEvent:
    """Decoded `TicketPurchased` or `NumbersDrawn` log."""

    name: str
    args: Dict[str, Any]
    block_number: int
    transaction_hash: str


@dataclass
class TransactionResult:
    """Outcome handed back to the caller of a user action."""

    action: TxAction
    status: TxStatus
    tx_hash: Optional[str] = None
    reason: Optional[str] = None
    failure: Optional[FailureKind] = None
    error: Optional[Exception] = None
    events: List[LotteryEvent] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == TxStatus.CONFIRMED


@dataclass(frozen=True)
class ViewState:
    """Everything presentation needs, and nothing else."""

    session: Session
    role: Role
    snapshot: ContractSnapshot
    transaction: TransactionState
    status_message: str = ""

    @property
    def is_loading(self) -> bool:
        return self.transaction.is_loading

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account": self.session.account,
            "connected": self.session.connected,
            "isOwner": self.role.is_owner,
            "participantCount": self.snapshot.participant_count,
            "lastWinner": self.snapshot.last_winner,
            "lastDrawnNumbers": list(self.snapshot.last_drawn_numbers),
            "transaction": {
                "status": self.transaction.status.value,
                "action": self.transaction.action.value if self.transaction.action else None,
                "reason": self.transaction.reason,
                "failure": self.transaction.failure.value if self.transaction.failure else None,
                "txHash": self.transaction.tx_hash,
            },
            "isLoading": self.is_loading,
            "status": self.status_message,
        }
