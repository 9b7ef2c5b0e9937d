"""Tests for the eth_account keystore wallet."""

from unittest.mock import MagicMock

import pytest
from eth_account import Account

from ethermillions.errors import ConnectionRejected, UserCancelled
from ethermillions.wallet.provider import KeystoreWallet

KEY_1 = "0x" + "11" * 32
KEY_2 = "0x" + "22" * 32


def _w3():
    w3 = MagicMock()
    w3.eth.get_transaction_count.return_value = 0
    w3.eth.gas_price = 1_000_000_000
    w3.eth.send_raw_transaction.return_value = bytes.fromhex("cd" * 32)
    return w3


def _wallet(approver=None, keys=(KEY_1, KEY_2)):
    return KeystoreWallet(_w3(), [Account.from_key(k) for k in keys], chain_id=31337, approver=approver)


class TestAccounts:

    @pytest.mark.asyncio
    async def test_request_accounts_in_order(self):
        wallet = _wallet()
        accounts = await wallet.request_accounts()
        assert accounts == [Account.from_key(KEY_1).address, Account.from_key(KEY_2).address]

    @pytest.mark.asyncio
    async def test_declined_prompt_is_user_cancellation(self):
        wallet = _wallet(approver=lambda kind, payload: False)
        with pytest.raises(UserCancelled):
            await wallet.request_accounts()

    @pytest.mark.asyncio
    async def test_locked_wallet_rejects(self):
        wallet = _wallet(keys=())
        with pytest.raises(ConnectionRejected):
            await wallet.request_accounts()

    @pytest.mark.asyncio
    async def test_unknown_signer_address(self):
        wallet = _wallet()
        with pytest.raises(ConnectionRejected):
            await wallet.get_signer("0x" + "99" * 20)


class TestNotifications:

    def test_select_and_lock_notify_subscribers(self):
        wallet = _wallet()
        seen = []
        unsubscribe = wallet.subscribe_accounts_changed(seen.append)
        second = Account.from_key(KEY_2).address

        wallet.select_account(second)
        wallet.lock()
        unsubscribe()
        unsubscribe()
        wallet.set_accounts([Account.from_key(KEY_1)])

        assert seen[0][0] == second
        assert seen[1] == []
        assert len(seen) == 2
        assert wallet.subscriber_count == 0


class TestSigning:

    @pytest.mark.asyncio
    async def test_signer_signs_and_broadcasts(self):
        wallet = _wallet()
        address = Account.from_key(KEY_1).address
        signer = await wallet.get_signer(address.lower())
        txn = {"to": "0x1234567890123456789012345678901234567890", "value": 10**16, "gas": 60_000, "data": "0x"}

        tx_hash = await signer.send_transaction(txn)

        assert tx_hash == "0x" + "cd" * 32
        assert signer.address == address
        wallet.w3.eth.send_raw_transaction.assert_called_once()

    @pytest.mark.asyncio
    async def test_rejected_signature(self):
        prompts = []

        def approver(kind, payload):
            prompts.append(kind)
            return kind == "connect"

        wallet = _wallet(approver=approver)
        signer = await wallet.get_signer(Account.from_key(KEY_1).address)

        with pytest.raises(UserCancelled):
            await signer.send_transaction({"to": "0x1234567890123456789012345678901234567890", "value": 0})

        assert prompts == ["sign"]
        wallet.w3.eth.send_raw_transaction.assert_not_called()


class TestFromConfig:

    def test_no_keys_means_no_wallet(self):
        assert KeystoreWallet.from_config(_w3(), {"wallet": {"private_keys": ""}}) is None

    def test_comma_separated_keys(self):
        wallet = KeystoreWallet.from_config(
            _w3(), {"wallet": {"private_keys": f"{KEY_1}, {KEY_2}"}, "blockchain": {"chain_id": "31337"}}
        )
        assert len(wallet.accounts) == 2
        assert wallet.chain_id == 31337
