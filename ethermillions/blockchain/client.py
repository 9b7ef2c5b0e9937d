"""Contract binding for the EtherMillions lottery."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError
from web3.logs import DISCARD

from ..errors import NotConnected, Reverted, SubmissionFailed
from ..lottery.models import LotteryEvent
from ..utils.common import is_zero_address
from ..utils.logger import get_logger
from ..wallet.provider import Signer
from .contracts import CONTRACT_ADDRESS, EVENT_NAMES, load_contract_abi

logger = get_logger(__name__)


def create_web3(config: Dict[str, Any]) -> Web3:
    """Build the HTTP RPC connection shared by the wallet and the contract binding."""
    blockchain_cfg = config.get("blockchain", {})
    rpc_url = blockchain_cfg.get("rpc_url", "http://127.0.0.1:8545")
    try:
        rpc_timeout = float(blockchain_cfg.get("rpc_timeout", 10.0))
    except (TypeError, ValueError):
        rpc_timeout = 10.0
    logger.info("Using RPC %s (timeout %ss)", rpc_url, rpc_timeout)
    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": rpc_timeout}))


def revert_reason(exc: Exception) -> str:
    """Extract the human readable part of a web3 revert error."""
    message = getattr(exc, "message", None) or str(exc)
    return str(message)


class LotteryContract:
    """Async-friendly façade over the lottery contract, bound to one signer at a time."""

    def __init__(
        self,
        w3: Web3,
        address: str = CONTRACT_ADDRESS,
        abi: Optional[List[Dict[str, Any]]] = None,
        *,
        gas_multiplier: float = 1.15,
        tx_timeout: int = 180,
    ) -> None:
        self._w3 = w3
        self.address = Web3.to_checksum_address(address)
        self._contract: Contract = w3.eth.contract(address=self.address, abi=abi or load_contract_abi())
        self._gas_multiplier = float(gas_multiplier)
        self._tx_timeout = int(tx_timeout)
        self._signer: Optional[Signer] = None

    @classmethod
    def from_config(cls, w3: Web3, config: Dict[str, Any]) -> "LotteryContract":
        blockchain_cfg = config.get("blockchain", {})
        return cls(
            w3,
            gas_multiplier=float(blockchain_cfg.get("gas_multiplier", 1.15)),
            tx_timeout=int(blockchain_cfg.get("tx_timeout", 180)),
        )

    # ------------------------------------------------------------------
    # Signer binding
    # ------------------------------------------------------------------
    def bind(self, signer: Signer) -> None:
        self._signer = signer
        logger.info("Contract %s bound to signer %s", self.address, signer.address)

    def unbind(self) -> None:
        if self._signer is not None:
            logger.info("Contract %s unbound from %s", self.address, self._signer.address)
        self._signer = None

    @property
    def signer(self) -> Optional[Signer]:
        return self._signer

    @property
    def is_bound(self) -> bool:
        return self._signer is not None

    def _ensure_signer(self) -> Signer:
        if self._signer is None:
            raise NotConnected()
        return self._signer

    # ------------------------------------------------------------------
    # Low level helpers
    # ------------------------------------------------------------------
    async def _call_view(self, function_name: str, *args) -> Any:
        self._ensure_signer()
        contract = self._contract

        def _call():
            return getattr(contract.functions, function_name)(*args).call()

        return await asyncio.to_thread(_call)

    async def _send_transaction(self, function_name: str, *args, value: int = 0) -> str:
        signer = self._ensure_signer()
        contract = self._contract

        def _build() -> Dict[str, Any]:
            tx_function = getattr(contract.functions, function_name)(*args)
            params = {"from": signer.address, "value": value}
            gas_estimate = tx_function.estimate_gas(params)
            return dict(tx_function.build_transaction({**params, "gas": int(gas_estimate * self._gas_multiplier)}))

        try:
            txn = await asyncio.to_thread(_build)
        except ContractLogicError as exc:
            raise SubmissionFailed(revert_reason(exc)) from exc

        tx_hash = await signer.send_transaction(txn)
        logger.info("Sent transaction %s for %s", tx_hash, function_name)
        return tx_hash

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------
    async def buy_ticket(self, value_wei: int) -> str:
        return await self._send_transaction("buyTicket", value=value_wei)

    async def draw_numbers(self) -> str:
        return await self._send_transaction("drawNumbers")

    async def wait_for_transaction(self, tx_hash: str, timeout: Optional[int] = None) -> Dict[str, Any]:
        """Block until the transaction is mined; raise Reverted if execution failed."""
        self._ensure_signer()
        w3 = self._w3
        wait_timeout = timeout if timeout is not None else self._tx_timeout

        def _wait():
            return w3.eth.wait_for_transaction_receipt(tx_hash, timeout=wait_timeout)

        receipt = await asyncio.to_thread(_wait)
        block_number = int(receipt["blockNumber"])
        if int(receipt["status"]) != 1:
            raise Reverted(f"transaction {tx_hash} reverted in block {block_number}", tx_hash=tx_hash)
        logger.info("Transaction %s confirmed in block %d", tx_hash, block_number)
        return receipt

    def decode_events(self, receipt: Dict[str, Any]) -> List[LotteryEvent]:
        """Decode lottery events emitted in a receipt, ignoring unrelated logs."""
        events: List[LotteryEvent] = []
        for name in EVENT_NAMES:
            event = getattr(self._contract.events, name)()
            for log in event.process_receipt(receipt, errors=DISCARD):
                events.append(
                    LotteryEvent(
                        name=log["event"],
                        args=dict(log["args"]),
                        block_number=int(log["blockNumber"]),
                        transaction_hash=Web3.to_hex(log["transactionHash"]),
                    )
                )
        logger.debug("Decoded %d lottery events", len(events))
        return events

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------
    async def get_participant_count(self) -> int:
        return int(await self._call_view("getParticipantCount"))

    async def get_last_winner(self) -> Optional[str]:
        winner = await self._call_view("getLastWinner")
        return None if is_zero_address(winner) else str(winner)

    async def get_last_drawn_numbers(self) -> Tuple[int, ...]:
        numbers = await self._call_view("getLastDrawnNumbers")
        return tuple(int(n) for n in numbers)

    async def owner(self) -> str:
        return str(await self._call_view("owner"))

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    async def health_check(self) -> Dict[str, Any]:
        w3 = self._w3
        try:
            latest_block = await asyncio.to_thread(lambda: int(w3.eth.block_number))
            return {"status": "healthy", "latestBlock": latest_block}
        except Exception as exc:  # pragma: no cover - health failures are diagnostic
            logger.exception("Blockchain health check failed")
            return {"status": "error", "detail": str(exc)}

    def get_client_status(self) -> Dict[str, Any]:
        return {
            "contract": self.address,
            "signer": self._signer.address if self._signer else None,
        }
