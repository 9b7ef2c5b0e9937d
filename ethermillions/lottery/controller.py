"""Client controller: wires session, binding, role, sync and transactions into one ViewState."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from ..errors import LotteryClientError
from ..utils.config import get_config_value
from ..utils.logger import get_logger
from ..wallet.provider import Signer, WalletProvider
from ..wallet.session import WalletSessionManager
from . import status
from .access import resolve_role
from .models import ContractSnapshot, Role, Session, TransactionResult, TransactionState, ViewState
from .sync import DEFAULT_REFRESH_INTERVAL, ContractDataSynchronizer
from .transactions import TransactionOrchestrator

if TYPE_CHECKING:
    from ..blockchain.client import LotteryContract

logger = get_logger(__name__)

ViewListener = Callable[[ViewState], None]


class LotteryClient:
    """One wallet session against one lottery contract.

    Presentation reads :meth:`view_state` (or subscribes with
    :meth:`add_listener`) and calls the action methods; nothing else.
    """

    def __init__(
        self,
        provider: Optional[WalletProvider],
        binding: "LotteryContract",
        config: Optional[Dict[str, Any]] = None,
        *,
        price_wei: Optional[int] = None,
    ) -> None:
        config = config or {}
        self._binding = binding
        self._role = Role()
        self._status_message = ""
        # bumped on every bind and disconnect; stale connect hooks stop at the next await
        self._binding_epoch = 0
        self._listeners: List[ViewListener] = []

        refresh = float(get_config_value(config, "client.refresh_interval", DEFAULT_REFRESH_INTERVAL))
        self.synchronizer = ContractDataSynchronizer(refresh_interval=refresh)
        self.wallet = WalletSessionManager(
            provider,
            on_connected=self._handle_connected,
            on_disconnected=self._handle_disconnected,
            on_error=self._handle_session_error,
        )
        self.transactions = TransactionOrchestrator(
            self.wallet.session,
            binding,
            role=lambda: self._role,
            on_confirmed=self.refresh,
            price_wei=price_wei,
        )
        self.synchronizer.add_listener(lambda _snapshot: self._publish())
        self.transactions.add_listener(self._handle_transition)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    @property
    def session(self) -> Session:
        return self.wallet.session

    @property
    def role(self) -> Role:
        return self._role

    @property
    def snapshot(self) -> ContractSnapshot:
        return self.synchronizer.snapshot

    @property
    def transaction_state(self) -> TransactionState:
        return self.transactions.state

    @property
    def status_message(self) -> str:
        return self._status_message

    def view_state(self) -> ViewState:
        return ViewState(
            session=replace(self.wallet.session),
            role=self._role,
            snapshot=self.synchronizer.snapshot,
            transaction=self.transactions.state,
            status_message=self._status_message,
        )

    def add_listener(self, callback: ViewListener) -> None:
        self._listeners.append(callback)

    def _publish(self) -> None:
        view = self.view_state()
        for callback in list(self._listeners):
            try:
                callback(view)
            except Exception as exc:  # pragma: no cover
                logger.error("View listener failed: %s", exc)

    def _set_status(self, message: str) -> None:
        self._status_message = message
        self._publish()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    async def connect(self) -> bool:
        """Connect the wallet. Failures become status messages, never exceptions."""
        try:
            await self.wallet.connect()
        except LotteryClientError as exc:
            logger.error("Error connecting wallet: %s", exc)
            self._set_status(status.describe_connect_error(exc))
            return False
        return True

    async def buy_ticket(self) -> TransactionResult:
        return await self.transactions.buy_ticket()

    async def draw_numbers(self) -> TransactionResult:
        return await self.transactions.draw_numbers()

    async def refresh(self) -> ContractSnapshot:
        if not self.wallet.session.connected or not self._binding.is_bound:
            return self.synchronizer.snapshot
        return await self.synchronizer.sync(self._binding)

    async def shutdown(self) -> None:
        """Release the poller and the account subscription."""
        self.wallet.disconnect_observed()
        await self.synchronizer.stop()
        logger.info("Lottery client shut down")

    # ------------------------------------------------------------------
    # Session hooks
    # ------------------------------------------------------------------
    async def _handle_connected(self, signer: Signer) -> None:
        self._binding_epoch += 1
        epoch = self._binding_epoch
        self._binding.bind(signer)
        self._role = Role()
        self._set_status(status.WALLET_CONNECTED)

        role = await resolve_role(self.wallet.session, self._binding)
        if epoch != self._binding_epoch:
            logger.info("Session changed while resolving role for %s", signer.address)
            return
        self._role = role
        self._publish()
        await self.synchronizer.sync(self._binding)
        if epoch != self._binding_epoch:
            return
        self.synchronizer.start(self._binding)

    def _handle_disconnected(self) -> None:
        self._binding_epoch += 1
        self.synchronizer.cancel()
        self._binding.unbind()
        self._role = Role()
        self.transactions.reset()
        self._set_status(status.WALLET_DISCONNECTED)

    def _handle_session_error(self, error: LotteryClientError) -> None:
        self._set_status(status.describe_connect_error(error))

    def _handle_transition(self, state: TransactionState, message: str) -> None:
        self._status_message = message
        self._publish()
