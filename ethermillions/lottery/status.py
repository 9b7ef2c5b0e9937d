"""Human-readable status text for session and transaction lifecycle events."""

from __future__ import annotations

from typing import Optional

from ..errors import (
    ConnectionRejected,
    NotConnected,
    OperationInProgress,
    ProviderUnavailable,
    Unauthorized,
    UserCancelled,
)
from .models import FailureKind, TxAction, TxStatus

WALLET_CONNECTED = "Wallet connected successfully!"
WALLET_DISCONNECTED = "Wallet disconnected"
WALLET_MISSING = "Please install a wallet provider!"
WALLET_REJECTED = "Wallet connection rejected by user"
WALLET_FAILED = "Failed to connect wallet"

TX_SUBMITTED = "Transaction submitted. Waiting for confirmation..."
TX_CANCELLED = "Transaction cancelled by user"
TX_BUSY = "Another transaction is already in progress"
NOT_CONNECTED = "Please connect your wallet first"
OWNER_ONLY = "Only the contract owner can draw numbers"

_PENDING = {
    TxAction.BUY_TICKET: "Purchasing ticket...",
    TxAction.DRAW_NUMBERS: "Drawing numbers...",
}
_DONE = {
    TxAction.BUY_TICKET: "Ticket purchased successfully!",
    TxAction.DRAW_NUMBERS: "Numbers drawn successfully!",
}
_FAILED = {
    TxAction.BUY_TICKET: "Failed to purchase ticket",
    TxAction.DRAW_NUMBERS: "Failed to draw numbers",
}


def describe(
    action: TxAction,
    status: TxStatus,
    reason: Optional[str] = None,
    failure: Optional[FailureKind] = None,
) -> str:
    """Map a transaction lifecycle step to its status line."""
    if status == TxStatus.SUBMITTING:
        return _PENDING[action]
    if status == TxStatus.AWAITING_CONFIRMATION:
        return TX_SUBMITTED
    if status == TxStatus.CONFIRMED:
        return _DONE[action]
    if status == TxStatus.FAILED:
        if failure == FailureKind.CANCELLED:
            return TX_CANCELLED
        if reason:
            return f"{_FAILED[action]}: {reason}"
        return _FAILED[action]
    return ""


def describe_rejection(error: Exception) -> str:
    """Status line for an action refused before any network call."""
    if isinstance(error, OperationInProgress):
        return TX_BUSY
    if isinstance(error, Unauthorized):
        return OWNER_ONLY
    if isinstance(error, NotConnected):
        return NOT_CONNECTED
    return str(error)


def describe_connect_error(error: Exception) -> str:
    if isinstance(error, ProviderUnavailable):
        return WALLET_MISSING
    if isinstance(error, UserCancelled):
        return WALLET_REJECTED
    if isinstance(error, ConnectionRejected) and error.reason:
        return f"{WALLET_FAILED}: {error.reason}"
    return WALLET_FAILED
