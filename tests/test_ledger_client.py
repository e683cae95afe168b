"""
Tests for LedgerClient against a mocked solana-py AsyncClient.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.pubkey import Pubkey

from builders import keyed, metadata_bytes, rpc_response, token_account_bytes
from layouts import MINT_OFFSET, UPDATE_AUTHORITY_OFFSET, creator_offset, get_metadata_pda
from ledger_client import LedgerClient, b58_byte, key_filter
from models import MetadataKey


@pytest.fixture
def rpc():
    client = MagicMock()
    client.close = AsyncMock()
    client.get_account_info = AsyncMock()
    client.get_multiple_accounts = AsyncMock()
    client.get_program_accounts = AsyncMock(return_value=rpc_response([]))
    client.get_token_largest_accounts = AsyncMock()
    client.get_token_accounts_by_owner = AsyncMock()
    return client


@pytest.fixture
def ledger_client(rpc) -> LedgerClient:
    return LedgerClient("http://localhost:8899", client=rpc)


def metadata_account(**kwargs):
    mint = Pubkey.new_unique()
    return keyed(get_metadata_pda(mint), metadata_bytes(mint, **kwargs))


def test_b58_byte():
    assert b58_byte(0) == "1"
    assert b58_byte(1) == "2"
    assert b58_byte(4) == "5"
    with pytest.raises(ValueError):
        b58_byte(58)


def test_key_filter_matches_discriminator():
    opts = key_filter(MetadataKey.METADATA_V1)

    assert opts.offset == 0
    assert opts.bytes == "5"


@pytest.mark.asyncio
async def test_get_account_info_missing_returns_none(ledger_client, rpc):
    rpc.get_account_info.return_value = rpc_response(None)

    assert await ledger_client.get_account_info(Pubkey.new_unique()) is None


@pytest.mark.asyncio
async def test_get_account_info_returns_bytes(ledger_client, rpc):
    rpc.get_account_info.return_value = rpc_response(SimpleNamespace(data=b"\x06abc"))

    assert await ledger_client.get_account_info(Pubkey.new_unique()) == b"\x06abc"


@pytest.mark.asyncio
async def test_get_largest_token_holders_keeps_rank_order(ledger_client, rpc):
    first, second = Pubkey.new_unique(), Pubkey.new_unique()
    rpc.get_token_largest_accounts.return_value = rpc_response([
        SimpleNamespace(address=first), SimpleNamespace(address=second)
    ])

    assert await ledger_client.get_largest_token_holders(Pubkey.new_unique()) == [first, second]


@pytest.mark.asyncio
async def test_get_multiple_accounts_chunks_requests(ledger_client, rpc):
    addresses = [Pubkey.new_unique() for _ in range(150)]
    rpc.get_multiple_accounts.side_effect = lambda chunk: rpc_response(
        [SimpleNamespace(data=bytes(a)) for a in chunk]
    )

    results = await ledger_client.get_multiple_accounts(addresses)

    assert rpc.get_multiple_accounts.await_count == 2
    assert results == [bytes(a) for a in addresses]


@pytest.mark.asyncio
async def test_find_records_by_creators_unions_disjoint_sets(ledger_client, rpc):
    """Two creators with 9 and 2 disjoint matches give 11 records."""
    c1, c2 = Pubkey.new_unique(), Pubkey.new_unique()
    matches = {
        str(c1): [metadata_account(creators=[(c1, True, 100)]) for _ in range(9)],
        str(c2): [metadata_account(creators=[(c2, True, 100)]) for _ in range(2)],
    }

    async def program_accounts(program_id, encoding=None, filters=None):
        creator_opts = filters[1]
        if creator_opts.offset == creator_offset(0):
            return rpc_response(matches.get(creator_opts.bytes, []))
        return rpc_response([])

    rpc.get_program_accounts.side_effect = program_accounts

    records = await ledger_client.find_records_by_creators([c1, c2])

    assert len(records) == 11
    # one scan per creator slot
    assert rpc.get_program_accounts.await_count == 10
    assert [r.metadata_address for r in records] == [a.pubkey for a in matches[str(c1)] + matches[str(c2)]]


@pytest.mark.asyncio
async def test_find_records_by_creators_dedupes_shared_records(ledger_client, rpc):
    c1, c2 = Pubkey.new_unique(), Pubkey.new_unique()
    shared = metadata_account(creators=[(c1, True, 50), (c2, True, 50)])

    async def program_accounts(program_id, encoding=None, filters=None):
        creator_opts = filters[1]
        if (creator_opts.bytes, creator_opts.offset) in {(str(c1), creator_offset(0)), (str(c2), creator_offset(1))}:
            return rpc_response([shared])
        return rpc_response([])

    rpc.get_program_accounts.side_effect = program_accounts

    records = await ledger_client.find_records_by_creators([c1, c2])

    assert len(records) == 1


@pytest.mark.asyncio
async def test_find_records_by_mint_uses_mint_offset(ledger_client, rpc):
    account = metadata_account()
    rpc.get_program_accounts.return_value = rpc_response([account])

    records = await ledger_client.find_records_by_mint(Pubkey.new_unique())

    filters = rpc.get_program_accounts.await_args.kwargs["filters"]
    assert filters[1].offset == MINT_OFFSET
    assert len(records) == 1
    assert records[0].metadata_address == account.pubkey


@pytest.mark.asyncio
async def test_find_records_by_update_authority_uses_authority_offset(ledger_client, rpc):
    authority = Pubkey.new_unique()

    await ledger_client.find_records_by_update_authority(authority)

    filters = rpc.get_program_accounts.await_args.kwargs["filters"]
    assert filters[1].offset == UPDATE_AUTHORITY_OFFSET
    assert filters[1].bytes == str(authority)


@pytest.mark.asyncio
async def test_find_records_skips_malformed_and_foreign_accounts(ledger_client, rpc):
    good = metadata_account()
    truncated = keyed(Pubkey.new_unique(), good.account.data[:50])
    edition = keyed(Pubkey.new_unique(), bytes([MetadataKey.EDITION_V1]) + bytes(40))
    rpc.get_program_accounts.return_value = rpc_response([truncated, good, edition])

    records = await ledger_client.find_records_by_mint(Pubkey.new_unique())

    assert [r.metadata_address for r in records] == [good.pubkey]


@pytest.mark.asyncio
async def test_find_records_by_owner_keeps_single_unit_accounts(ledger_client, rpc):
    owner = Pubkey.new_unique()
    nft_mint, fungible_mint = Pubkey.new_unique(), Pubkey.new_unique()
    rpc.get_token_accounts_by_owner.return_value = rpc_response([
        keyed(Pubkey.new_unique(), token_account_bytes(nft_mint, owner, amount=1)),
        keyed(Pubkey.new_unique(), token_account_bytes(fungible_mint, owner, amount=5000)),
    ])
    rpc.get_multiple_accounts.return_value = rpc_response([
        SimpleNamespace(data=metadata_bytes(nft_mint, name="Owned"))
    ])

    records = await ledger_client.find_records_by_owner(owner)

    rpc.get_multiple_accounts.assert_awaited_once_with([get_metadata_pda(nft_mint)])
    assert len(records) == 1
    assert records[0].mint == nft_mint
    assert records[0].onchain.name == "Owned"


@pytest.mark.asyncio
async def test_find_records_by_owner_without_tokens(ledger_client, rpc):
    rpc.get_token_accounts_by_owner.return_value = rpc_response([])

    assert await ledger_client.find_records_by_owner(Pubkey.new_unique()) == []
    rpc.get_multiple_accounts.assert_not_awaited()


@pytest.mark.asyncio
async def test_rpc_errors_propagate(ledger_client, rpc):
    rpc.get_program_accounts.side_effect = ConnectionError("node down")

    with pytest.raises(ConnectionError):
        await ledger_client.find_records_by_mint(Pubkey.new_unique())


@pytest.mark.asyncio
async def test_context_manager_closes_client(rpc):
    async with LedgerClient("http://localhost:8899", client=rpc):
        pass

    rpc.close.assert_awaited_once()


def test_every_metadata_key_is_a_single_base58_digit():
    for key in MetadataKey:
        assert key_filter(key).bytes == b58_byte(int(key))
