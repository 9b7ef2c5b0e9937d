"""Common utility functions for the lottery client."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar

from ..errors import ReadUnavailable
from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def shorten_eth_address(address: str) -> str:
    """Shorten an Ethereum address for display: '0x123456...abcd'.
    Returns the first 6 and last 4 characters, separated by '...'.
    Handles addresses with or without '0x' prefix.
    """
    if not address:
        return ""
    addr = address.lower()
    if addr.startswith("0x"):
        addr = addr[2:]
    if len(addr) < 10:
        return f"0x{addr}"
    return f"0x{addr[:6]}...{addr[-4:]}"


def same_address(left: Optional[str], right: Optional[str]) -> bool:
    """Compare two hex addresses ignoring checksum casing. Empty never matches."""
    if not left or not right:
        return False
    return left.lower() == right.lower()


def is_zero_address(address: Optional[str]) -> bool:
    return not address or address.lower() == ZERO_ADDRESS


async def best_effort(read: Callable[[], Awaitable[T]], label: str) -> Optional[T]:
    """Run an optional contract read, mapping any failure to None.

    Used for every read whose failure must not abort the caller (owner lookup,
    snapshot fields). The failure is logged and then dropped.
    """
    try:
        return await read()
    except Exception as exc:
        logger.warning("%s", ReadUnavailable(f"{label}: {exc}"))
        return None
