"""Pytest configuration and fixtures."""

import asyncio
from typing import Any, Callable, Dict, List, Optional

import pytest

from ethermillions.errors import NotConnected, UserCancelled
from ethermillions.lottery.models import LotteryEvent
from ethermillions.wallet.provider import Signer, WalletProvider

ACCOUNT_A = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
ACCOUNT_B = "0x1111111111111111111111111111111111111111"
TX_HASH = "0x" + "ab" * 32


class FakeSigner(Signer):
    def __init__(self, address: str):
        self.address = address

    async def send_transaction(self, txn: Dict[str, Any]) -> str:
        return TX_HASH


class FakeProvider(WalletProvider):
    """Scriptable stand-in for a wallet provider."""

    def __init__(self, accounts: Optional[List[str]] = None):
        self.accounts = list(accounts if accounts is not None else [ACCOUNT_A])
        self.reject = False
        self.request_count = 0
        self.listeners: List[Callable[[List[str]], None]] = []

    async def request_accounts(self) -> List[str]:
        self.request_count += 1
        if self.reject:
            raise UserCancelled("User rejected the request")
        return list(self.accounts)

    async def get_signer(self, address: str) -> Signer:
        return FakeSigner(address)

    def subscribe_accounts_changed(self, callback):
        self.listeners.append(callback)

        def _unsubscribe():
            if callback in self.listeners:
                self.listeners.remove(callback)

        return _unsubscribe

    def emit(self, accounts: List[str]) -> None:
        self.accounts = list(accounts)
        for callback in list(self.listeners):
            callback(list(accounts))


class FakeBinding:
    """In-memory contract binding recording every call it receives."""

    def __init__(self, owner: str = ACCOUNT_A):
        self.owner_address = owner
        self.participant_count = 0
        self.last_winner: Optional[str] = None
        self.last_drawn_numbers = ()
        self.failing_reads = set()
        self.calls: List[str] = []
        self.submit_error: Optional[Exception] = None
        self.wait_error: Optional[Exception] = None
        self.submit_gate: Optional[asyncio.Event] = None
        self.read_gate: Optional[asyncio.Event] = None
        self.events: List[LotteryEvent] = []
        self.paid: List[int] = []
        self._signer = None

    @property
    def is_bound(self) -> bool:
        return self._signer is not None

    def bind(self, signer) -> None:
        self._signer = signer

    def unbind(self) -> None:
        self._signer = None

    async def _read(self, name: str, value):
        self.calls.append(name)
        if self._signer is None:
            raise NotConnected()
        if self.read_gate is not None:
            await self.read_gate.wait()
        if name in self.failing_reads:
            raise RuntimeError(f"{name} not available")
        return value

    async def get_participant_count(self) -> int:
        return await self._read("getParticipantCount", self.participant_count)

    async def get_last_winner(self) -> Optional[str]:
        return await self._read("getLastWinner", self.last_winner)

    async def get_last_drawn_numbers(self):
        return await self._read("getLastDrawnNumbers", tuple(self.last_drawn_numbers))

    async def owner(self) -> str:
        return await self._read("owner", self.owner_address)

    async def _submit(self, name: str) -> str:
        self.calls.append(name)
        if self._signer is None:
            raise NotConnected()
        if self.submit_gate is not None:
            await self.submit_gate.wait()
        if self.submit_error is not None:
            raise self.submit_error
        return TX_HASH

    async def buy_ticket(self, value_wei: int) -> str:
        self.paid.append(value_wei)
        return await self._submit("buyTicket")

    async def draw_numbers(self) -> str:
        return await self._submit("drawNumbers")

    async def wait_for_transaction(self, tx_hash: str, timeout=None) -> Dict[str, Any]:
        self.calls.append("wait")
        if self.wait_error is not None:
            raise self.wait_error
        return {"status": 1, "blockNumber": 10, "transactionHash": tx_hash, "logs": []}

    def decode_events(self, receipt):
        return list(self.events)

    def count(self, name: str) -> int:
        return self.calls.count(name)


async def settle(rounds: int = 5) -> None:
    """Let scheduled callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def binding():
    return FakeBinding()
