"""Wallet session lifecycle: connection, account changes and teardown."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional

from ..errors import ConnectionRejected, LotteryClientError, ProviderUnavailable
from ..lottery.models import Session
from ..utils.common import same_address, shorten_eth_address
from ..utils.logger import get_logger
from .provider import Signer, WalletProvider

logger = get_logger(__name__)

ConnectedHook = Callable[[Signer], Awaitable[None]]
DisconnectedHook = Callable[[], None]


class WalletSessionManager:
    """Owns the single Session of a client instance and its account subscription."""

    def __init__(
        self,
        provider: Optional[WalletProvider],
        *,
        on_connected: Optional[ConnectedHook] = None,
        on_disconnected: Optional[DisconnectedHook] = None,
        on_error: Optional[Callable[[LotteryClientError], None]] = None,
    ) -> None:
        self._provider = provider
        self._on_connected = on_connected
        self._on_disconnected = on_disconnected
        self._on_error = on_error
        self.session = Session()
        self._signer: Optional[Signer] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._rebind_task: Optional[asyncio.Task] = None

    @property
    def signer(self) -> Optional[Signer]:
        return self._signer

    @property
    def is_subscribed(self) -> bool:
        return self._unsubscribe is not None

    async def connect(self) -> Signer:
        """Request account access and bind a signer to the primary account."""
        if self._provider is None:
            raise ProviderUnavailable("Please install a wallet provider!")

        try:
            accounts: List[str] = await self._provider.request_accounts()
        except LotteryClientError:
            raise
        except Exception as exc:
            raise ConnectionRejected(str(exc)) from exc

        if not accounts:
            raise ConnectionRejected("Wallet returned no accounts")
        return await self._bind(accounts[0])

    async def _bind(self, account: str) -> Signer:
        assert self._provider is not None
        if self.session.connected and self._signer is not None and same_address(account, self.session.account):
            logger.debug("Already connected as %s", shorten_eth_address(account))
            self._subscribe()
            return self._signer

        signer = await self._provider.get_signer(account)
        self._signer = signer
        self.session.account = account
        self.session.connected = True
        self._subscribe()
        logger.info("Wallet connected: %s", account)

        if self._on_connected is not None:
            await self._on_connected(signer)
        return signer

    def _subscribe(self) -> None:
        if self._unsubscribe is not None or self._provider is None:
            return
        self._unsubscribe = self._provider.subscribe_accounts_changed(self.on_accounts_changed)
        logger.debug("Subscribed to account changes")

    def on_accounts_changed(self, accounts: List[str]) -> None:
        """Provider notification. An empty list means the wallet disconnected."""
        if self._rebind_task is not None and not self._rebind_task.done():
            self._rebind_task.cancel()
        self._rebind_task = None

        if not accounts:
            logger.info("Wallet disconnected")
            self._signer = None
            self.session.reset()
            if self._on_disconnected is not None:
                self._on_disconnected()
            return

        logger.info("Accounts changed, primary is now %s", accounts[0])
        try:
            self._rebind_task = asyncio.get_running_loop().create_task(self._rebind(accounts[0]))
        except RuntimeError:
            logger.error("Account change received outside the event loop; ignoring %s", accounts[0])

    async def _rebind(self, account: str) -> None:
        try:
            await self._bind(account)
        except LotteryClientError as exc:
            logger.error("Re-binding to %s failed: %s", account, exc)
            if self._on_error is not None:
                self._on_error(exc)

    def disconnect_observed(self) -> None:
        """Drop the account-change subscription. Safe to call repeatedly."""
        if self._rebind_task is not None and not self._rebind_task.done():
            self._rebind_task.cancel()
        self._rebind_task = None

        if self._unsubscribe is None:
            return
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        unsubscribe()
        logger.debug("Unsubscribed from account changes")
