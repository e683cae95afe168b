# Filename: ledger_client.py

from typing import Iterable, List, Optional, Sequence, Tuple, Union

from loguru import logger
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.types import MemcmpOpts, TokenAccountOpts
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID

from layouts import (
    METADATA_PROGRAM_ID,
    MINT_OFFSET,
    UPDATE_AUTHORITY_OFFSET,
    LayoutError,
    decode_metadata,
    decode_token_account,
    get_metadata_pda,
    read_key,
    split_creator_filters,
)
from models import MetadataKey, MetadataRecord

MAX_MULTIPLE_ACCOUNTS = 100

_B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def b58_byte(value: int) -> str:
    """Base58 encoding of a single byte below 58, as used by discriminator memcmp filters."""
    if not 0 <= value < len(_B58_ALPHABET):
        raise ValueError(f"cannot encode {value} as a single base58 digit")
    return _B58_ALPHABET[value]


def key_filter(key: MetadataKey) -> MemcmpOpts:
    # Every MetadataKey is below 58, so the one-byte discriminator is a single base58 digit
    return MemcmpOpts(offset=0, bytes=b58_byte(int(key)))


def pubkey_filter(offset: int, pubkey: Pubkey) -> MemcmpOpts:
    return MemcmpOpts(offset=offset, bytes=str(pubkey))


class LedgerClient:
    """
    Ledger query interface over the Solana JSON-RPC.

    Every method is a thin async call into AsyncClient; errors from the RPC are
    not caught here and surface to the caller.
    """

    def __init__(self, endpoint: str, commitment: str = "confirmed", client: Optional[AsyncClient] = None):
        self.endpoint = endpoint
        self.client = client or AsyncClient(endpoint, commitment=Commitment(commitment))

    async def close(self):
        await self.client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # --------------------------------------- raw accounts

    async def get_account_info(self, address: Pubkey) -> Optional[bytes]:
        resp = await self.client.get_account_info(address)
        if resp.value is None:
            return None
        return bytes(resp.value.data)

    async def get_multiple_accounts(self, addresses: Sequence[Pubkey]) -> List[Optional[bytes]]:
        results: List[Optional[bytes]] = []
        for start in range(0, len(addresses), MAX_MULTIPLE_ACCOUNTS):
            chunk = list(addresses[start:start + MAX_MULTIPLE_ACCOUNTS])
            resp = await self.client.get_multiple_accounts(chunk)
            results.extend(bytes(acc.data) if acc is not None else None for acc in resp.value)
        return results

    async def get_program_accounts(
        self,
        filters: Sequence[Union[int, MemcmpOpts]],
        program_id: Pubkey = METADATA_PROGRAM_ID,
    ) -> List[Tuple[Pubkey, bytes]]:
        resp = await self.client.get_program_accounts(program_id, encoding="base64", filters=list(filters))
        return [(keyed.pubkey, bytes(keyed.account.data)) for keyed in resp.value]

    async def get_largest_token_holders(self, mint: Pubkey) -> List[Pubkey]:
        resp = await self.client.get_token_largest_accounts(mint)
        return [balance.address for balance in (resp.value or [])]

    # --------------------------------------- metadata index

    async def find_records_by_owner(self, owner: Pubkey) -> List[MetadataRecord]:
        resp = await self.client.get_token_accounts_by_owner(owner, TokenAccountOpts(program_id=TOKEN_PROGRAM_ID))

        mints: List[Pubkey] = []
        for keyed in resp.value:
            try:
                account = decode_token_account(keyed.pubkey, bytes(keyed.account.data))
            except LayoutError as e:
                logger.warning(f"[LEDGER] Skipping unreadable token account {keyed.pubkey}: {e}")
                continue
            # NFTs are the token accounts holding exactly one unit
            if account.amount == 1:
                mints.append(account.mint)

        if not mints:
            return []

        pdas = [get_metadata_pda(mint) for mint in mints]
        accounts = await self.get_multiple_accounts(pdas)
        return self._decode_records(
            (pda, data) for pda, data in zip(pdas, accounts) if data is not None
        )

    async def find_records_by_creators(self, creators: Sequence[Pubkey]) -> List[MetadataRecord]:
        found: List[Tuple[Pubkey, bytes]] = []
        seen = set()
        for creator, offset in split_creator_filters(list(creators)):
            accounts = await self.get_program_accounts(
                [key_filter(MetadataKey.METADATA_V1), pubkey_filter(offset, creator)]
            )
            for address, data in accounts:
                if address in seen:
                    continue
                seen.add(address)
                found.append((address, data))
        return self._decode_records(found)

    async def find_records_by_mint(self, mint: Pubkey) -> List[MetadataRecord]:
        accounts = await self.get_program_accounts(
            [key_filter(MetadataKey.METADATA_V1), pubkey_filter(MINT_OFFSET, mint)]
        )
        return self._decode_records(accounts)

    async def find_records_by_update_authority(self, update_authority: Pubkey) -> List[MetadataRecord]:
        accounts = await self.get_program_accounts(
            [key_filter(MetadataKey.METADATA_V1), pubkey_filter(UPDATE_AUTHORITY_OFFSET, update_authority)]
        )
        return self._decode_records(accounts)

    def _decode_records(self, accounts: Iterable[Tuple[Pubkey, bytes]]) -> List[MetadataRecord]:
        records = []
        for address, data in accounts:
            if read_key(data) != MetadataKey.METADATA_V1:
                continue
            try:
                onchain = decode_metadata(data)
            except LayoutError as e:
                logger.warning(f"[LEDGER] Skipping malformed metadata account {address}: {e}")
                continue
            records.append(MetadataRecord(mint=onchain.mint, metadata_address=address, onchain=onchain))
        return records
