"""Owner / participant role resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..utils.common import best_effort, same_address
from ..utils.logger import get_logger
from .models import Role, Session

if TYPE_CHECKING:
    from ..blockchain.client import LotteryContract

logger = get_logger(__name__)


async def resolve_role(session: Session, binding: "LotteryContract") -> Role:
    """Derive the caller's privilege. Any failure to read the owner denies it."""
    if not session.connected or not session.account:
        return Role()

    owner = await best_effort(binding.owner, "owner")
    if owner is None:
        return Role()

    role = Role(is_owner=same_address(owner, session.account), owner_address=owner)
    logger.info("Role for %s: %s", session.account, "owner" if role.is_owner else "participant")
    return role
