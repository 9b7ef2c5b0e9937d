"""Tests for owner role resolution."""

import pytest

from ethermillions.lottery.access import resolve_role
from ethermillions.lottery.models import Role, Session

from conftest import ACCOUNT_A, ACCOUNT_B, FakeSigner


def _session(account=ACCOUNT_A):
    return Session(account=account, connected=True)


@pytest.mark.asyncio
async def test_owner_match_is_case_insensitive(binding):
    binding.bind(FakeSigner(ACCOUNT_A))
    binding.owner_address = ACCOUNT_A.upper().replace("0X", "0x")

    role = await resolve_role(_session(ACCOUNT_A.lower()), binding)

    assert role.is_owner is True
    assert role.owner_address == binding.owner_address


@pytest.mark.asyncio
async def test_other_account_is_participant(binding):
    binding.bind(FakeSigner(ACCOUNT_B))

    role = await resolve_role(_session(ACCOUNT_B), binding)

    assert role.is_owner is False
    assert role.owner_address == ACCOUNT_A


@pytest.mark.asyncio
async def test_owner_read_failure_fails_closed(binding):
    binding.bind(FakeSigner(ACCOUNT_A))
    binding.failing_reads.add("owner")

    role = await resolve_role(_session(), binding)

    assert role == Role()


@pytest.mark.asyncio
async def test_empty_session_skips_lookup(binding):
    role = await resolve_role(Session(), binding)

    assert role.is_owner is False
    assert binding.calls == []
