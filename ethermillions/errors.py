"""Error taxonomy for the lottery client.

Every failure the client can observe maps onto one of these classes. They are
raised at the component that detects the problem and converted by the caller
into either a transaction state transition or a logged degradation.
"""

from __future__ import annotations

from typing import Optional


class LotteryClientError(Exception):
    """Base class for all client errors."""

    default_message = "Lottery client error"

    def __init__(self, reason: Optional[str] = None) -> None:
        self.reason = reason
        super().__init__(reason or self.default_message)


class ProviderUnavailable(LotteryClientError):
    default_message = "No wallet provider available"


class ConnectionRejected(LotteryClientError):
    default_message = "Connection request rejected"


class UserCancelled(ConnectionRejected):
    """The user declined a signing or account prompt."""

    default_message = "Request cancelled by user"


class NotConnected(LotteryClientError):
    default_message = "Wallet not connected"


class Unauthorized(LotteryClientError):
    default_message = "Caller is not the contract owner"


class ReadUnavailable(LotteryClientError):
    default_message = "Contract read unavailable"


class SubmissionFailed(LotteryClientError):
    default_message = "Transaction submission failed"


class Reverted(LotteryClientError):
    """The transaction was mined but its execution reverted."""

    default_message = "Transaction reverted"

    def __init__(self, reason: Optional[str] = None, tx_hash: Optional[str] = None) -> None:
        self.tx_hash = tx_hash
        super().__init__(reason)


class OperationInProgress(LotteryClientError):
    default_message = "Another transaction is already in progress"
