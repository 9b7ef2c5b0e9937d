"""Wallet provider abstraction and the keystore-backed implementation.

A wallet provider owns key material. The client only ever asks it for account
access, for a signer bound to one account, and to be told when the exposed
accounts change. An empty account list means the wallet disconnected.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from ..errors import ConnectionRejected, UserCancelled
from ..utils.logger import get_logger

logger = get_logger(__name__)

AccountsCallback = Callable[[List[str]], None]
Approver = Callable[[str, Dict[str, Any]], bool]


class Signer(ABC):
    """Credential-bound handle able to authorise transactions for one account."""

    address: str

    @abstractmethod
    async def send_transaction(self, txn: Dict[str, Any]) -> str:
        """Sign and broadcast a transaction, returning its hash as 0x-hex."""


class WalletProvider(ABC):
    """Capability surface the session manager consumes."""

    @abstractmethod
    async def request_accounts(self) -> List[str]:
        """Ask the user for account access; the first address is the primary one."""

    @abstractmethod
    async def get_signer(self, address: str) -> Signer:
        ...

    @abstractmethod
    def subscribe_accounts_changed(self, callback: AccountsCallback) -> Callable[[], None]:
        """Register for account-change notifications; returns an unsubscribe function."""


class LocalSigner(Signer):
    """Signs with an eth_account key and broadcasts over the wallet's RPC connection."""

    def __init__(self, wallet: "KeystoreWallet", account: LocalAccount) -> None:
        self._wallet = wallet
        self._account = account
        self.address = account.address

    async def send_transaction(self, txn: Dict[str, Any]) -> str:
        if not self._wallet.approve("sign", {"from": self.address, "tx": txn}):
            raise UserCancelled("Transaction signature rejected by user")

        w3 = self._wallet.w3
        account = self._account
        chain_id = self._wallet.chain_id

        def _send() -> str:
            prepared = dict(txn)
            prepared.setdefault("nonce", w3.eth.get_transaction_count(account.address))
            if "gasPrice" not in prepared and "maxFeePerGas" not in prepared:
                prepared["gasPrice"] = w3.eth.gas_price
            if chain_id is not None:
                prepared.setdefault("chainId", chain_id)
            signed = account.sign_transaction(prepared)
            # eth-account renamed rawTransaction to raw_transaction
            raw = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction")
            tx_hash = w3.eth.send_raw_transaction(raw)
            return Web3.to_hex(tx_hash)

        return await asyncio.to_thread(_send)


class KeystoreWallet(WalletProvider):
    """In-process wallet holding eth_account keys.

    ``approver`` stands in for the wallet's confirmation prompt: it is called
    with ``("connect", ...)`` on account requests and ``("sign", ...)`` before
    every signature, and returning False is a user rejection.
    """

    def __init__(
        self,
        w3: Web3,
        accounts: Iterable[LocalAccount],
        *,
        chain_id: Optional[int] = None,
        approver: Optional[Approver] = None,
    ) -> None:
        self.w3 = w3
        self.chain_id = chain_id
        self._accounts: List[LocalAccount] = list(accounts)
        self._approver = approver
        self._listeners: List[AccountsCallback] = []

    @classmethod
    def from_config(cls, w3: Web3, config: Dict[str, Any]) -> Optional["KeystoreWallet"]:
        """Build a wallet from ``wallet.private_keys``; None when no key is configured."""
        wallet_cfg = config.get("wallet", {})
        raw_keys = wallet_cfg.get("private_keys") or ""
        if isinstance(raw_keys, str):
            raw_keys = [key.strip() for key in raw_keys.split(",")]
        keys = [key for key in raw_keys if key]
        if not keys:
            logger.warning("No wallet keys configured")
            return None

        accounts = [Account.from_key(key) for key in keys]
        logger.info("Keystore wallet loaded with %d account(s)", len(accounts))
        chain_id = config.get("blockchain", {}).get("chain_id")
        return cls(w3, accounts, chain_id=int(chain_id) if chain_id is not None else None)

    @property
    def accounts(self) -> List[str]:
        return [account.address for account in self._accounts]

    def approve(self, kind: str, payload: Dict[str, Any]) -> bool:
        if self._approver is None:
            return True
        return bool(self._approver(kind, payload))

    async def request_accounts(self) -> List[str]:
        if not self._accounts:
            raise ConnectionRejected("Wallet is locked")
        if not self.approve("connect", {"accounts": self.accounts}):
            raise UserCancelled("Account access rejected by user")
        return self.accounts

    async def get_signer(self, address: str) -> Signer:
        for account in self._accounts:
            if account.address.lower() == address.lower():
                return LocalSigner(self, account)
        raise ConnectionRejected(f"Account {address} is not available in this wallet")

    def subscribe_accounts_changed(self, callback: AccountsCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    # ------------------------------------------------------------------
    # Account switching, as a user would do in the wallet UI
    # ------------------------------------------------------------------
    def select_account(self, address: str) -> None:
        """Move ``address`` to the front of the exposed account list."""
        matches = [a for a in self._accounts if a.address.lower() == address.lower()]
        if not matches:
            raise ValueError(f"Unknown account {address}")
        self._accounts = matches + [a for a in self._accounts if a not in matches]
        self._notify(self.accounts)

    def set_accounts(self, accounts: Sequence[LocalAccount]) -> None:
        self._accounts = list(accounts)
        self._notify(self.accounts)

    def lock(self) -> None:
        self._accounts = []
        self._notify([])

    def _notify(self, accounts: List[str]) -> None:
        for callback in list(self._listeners):
            try:
                callback(list(accounts))
            except Exception as exc:  # pragma: no cover
                logger.error("accountsChanged listener failed: %s", exc)

