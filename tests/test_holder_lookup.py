"""
Tests for holder lookup and token account / mint decoding.
"""

import pytest
from solders.pubkey import Pubkey

from builders import mint_bytes, token_account_bytes
from holder_lookup import AccountNotFound, get_holder_by_mint, get_token_account, get_token_mint
from layouts import LayoutError


@pytest.mark.asyncio
async def test_holder_takes_first_ranked_account(ledger):
    mint = Pubkey.new_unique()
    first, second = Pubkey.new_unique(), Pubkey.new_unique()
    ledger.holders[mint] = [first, second]

    assert await get_holder_by_mint(ledger, mint) == first


@pytest.mark.asyncio
async def test_no_holder(ledger):
    assert await get_holder_by_mint(ledger, Pubkey.new_unique()) is None


@pytest.mark.asyncio
async def test_holder_lookup_error_propagates(ledger):
    mint = Pubkey.new_unique()
    ledger.failing_holders.add(mint)

    with pytest.raises(ConnectionError):
        await get_holder_by_mint(ledger, mint)


@pytest.mark.asyncio
async def test_get_token_account(ledger):
    mint, holder, owner = Pubkey.new_unique(), Pubkey.new_unique(), Pubkey.new_unique()
    ledger.accounts[holder] = token_account_bytes(mint, owner)

    account = await get_token_account(ledger, mint, holder)

    assert account.address == holder
    assert account.owner == owner
    assert account.amount == 1


@pytest.mark.asyncio
async def test_get_token_account_without_holder(ledger):
    with pytest.raises(AccountNotFound):
        await get_token_account(ledger, Pubkey.new_unique(), None)

    assert ledger.calls == []


@pytest.mark.asyncio
async def test_get_token_account_missing(ledger):
    with pytest.raises(AccountNotFound):
        await get_token_account(ledger, Pubkey.new_unique(), Pubkey.new_unique())


@pytest.mark.asyncio
async def test_get_token_account_for_other_mint(ledger):
    holder = Pubkey.new_unique()
    ledger.accounts[holder] = token_account_bytes(Pubkey.new_unique(), Pubkey.new_unique())

    with pytest.raises(ValueError):
        await get_token_account(ledger, Pubkey.new_unique(), holder)


@pytest.mark.asyncio
async def test_get_token_mint(ledger):
    mint = Pubkey.new_unique()
    ledger.accounts[mint] = mint_bytes(supply=1, decimals=0)

    info = await get_token_mint(ledger, mint)

    assert info.address == mint
    assert info.supply == 1
    assert info.decimals == 0


@pytest.mark.asyncio
async def test_get_token_mint_malformed(ledger):
    mint = Pubkey.new_unique()
    ledger.accounts[mint] = b"\x00" * 10

    with pytest.raises(LayoutError):
        await get_token_mint(ledger, mint)


@pytest.mark.asyncio
async def test_get_token_mint_missing(ledger):
    with pytest.raises(AccountNotFound):
        await get_token_mint(ledger, Pubkey.new_unique())
