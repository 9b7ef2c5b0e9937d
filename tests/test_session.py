"""Tests for WalletSessionManager connection lifecycle."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from ethermillions.errors import ConnectionRejected, ProviderUnavailable, UserCancelled
from ethermillions.wallet.session import WalletSessionManager

from conftest import ACCOUNT_A, ACCOUNT_B, FakeProvider, settle


class TestConnect:

    @pytest.mark.asyncio
    async def test_connect_without_provider_raises(self):
        manager = WalletSessionManager(None)
        with pytest.raises(ProviderUnavailable):
            await manager.connect()
        assert manager.session.connected is False

    @pytest.mark.asyncio
    async def test_connect_rejected_by_user(self, provider):
        provider.reject = True
        manager = WalletSessionManager(provider)
        with pytest.raises(ConnectionRejected) as excinfo:
            await manager.connect()
        assert isinstance(excinfo.value, UserCancelled)
        assert manager.session.account is None

    @pytest.mark.asyncio
    async def test_connect_with_no_accounts_is_rejected(self):
        manager = WalletSessionManager(FakeProvider(accounts=[]))
        with pytest.raises(ConnectionRejected):
            await manager.connect()

    @pytest.mark.asyncio
    async def test_connect_populates_session_and_runs_hook(self, provider):
        hook = AsyncMock()
        manager = WalletSessionManager(provider, on_connected=hook)

        signer = await manager.connect()

        assert signer.address == ACCOUNT_A
        assert manager.session.account == ACCOUNT_A
        assert manager.session.connected is True
        hook.assert_awaited_once_with(signer)

    @pytest.mark.asyncio
    async def test_reconnect_same_account_is_idempotent(self, provider):
        hook = AsyncMock()
        manager = WalletSessionManager(provider, on_connected=hook)

        first = await manager.connect()
        second = await manager.connect()

        assert first is second
        assert manager.session.account == ACCOUNT_A
        assert hook.await_count == 1

    @pytest.mark.asyncio
    async def test_single_subscription_across_connects(self, provider):
        manager = WalletSessionManager(provider)
        for _ in range(3):
            await manager.connect()
        assert len(provider.listeners) == 1


class TestAccountChanges:

    @pytest.mark.asyncio
    async def test_empty_accounts_resets_session_immediately(self, provider):
        on_disconnected = MagicMock()
        manager = WalletSessionManager(provider, on_disconnected=on_disconnected)
        await manager.connect()

        provider.emit([])

        assert manager.session.account is None
        assert manager.session.connected is False
        assert manager.signer is None
        on_disconnected.assert_called_once()

    @pytest.mark.asyncio
    async def test_new_primary_account_rebinds(self, provider):
        hook = AsyncMock()
        manager = WalletSessionManager(provider, on_connected=hook)
        await manager.connect()

        provider.emit([ACCOUNT_B, ACCOUNT_A])
        await settle()

        assert manager.session.account == ACCOUNT_B
        assert manager.signer.address == ACCOUNT_B
        assert hook.await_count == 2
        assert len(provider.listeners) == 1

    @pytest.mark.asyncio
    async def test_disconnect_then_reconnect(self, provider):
        manager = WalletSessionManager(provider)
        await manager.connect()
        provider.emit([])
        provider.accounts = [ACCOUNT_A]

        await manager.connect()

        assert manager.session.connected is True
        assert len(provider.listeners) == 1


class TestDisconnectObserved:

    def test_safe_before_any_connect(self, provider):
        manager = WalletSessionManager(provider)
        manager.disconnect_observed()
        manager.disconnect_observed()
        assert manager.is_subscribed is False

    @pytest.mark.asyncio
    async def test_removes_subscription_once(self, provider):
        manager = WalletSessionManager(provider)
        await manager.connect()
        assert manager.is_subscribed is True

        manager.disconnect_observed()
        manager.disconnect_observed()

        assert provider.listeners == []
        assert manager.is_subscribed is False
