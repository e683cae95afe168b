# Filename: holder_lookup.py

import logging
from typing import Optional

from solders.pubkey import Pubkey

from layouts import decode_mint, decode_token_account
from ledger_client import LedgerClient
from models import MintInfo, TokenAccountInfo

logger = logging.getLogger("holder_lookup")


class AccountNotFound(LookupError):
    """The requested account does not exist on the ledger."""


async def get_holder_by_mint(ledger: LedgerClient, mint: Pubkey) -> Optional[Pubkey]:
    """
    Largest token account for ``mint``, or None when nobody holds it.

    An NFT has a supply of one, so the first ranked account is taken without
    checking its balance or whether other accounts hold part of the supply.
    """
    holders = await ledger.get_largest_token_holders(mint)
    if holders:
        return holders[0]
    logger.debug(f"No holder found for mint {mint}")
    return None


async def get_token_account(ledger: LedgerClient, mint: Pubkey, holder: Optional[Pubkey]) -> TokenAccountInfo:
    if holder is None:
        raise AccountNotFound(f"no holder account for mint {mint}")

    data = await ledger.get_account_info(holder)
    if data is None:
        raise AccountNotFound(f"token account {holder} not found")

    account = decode_token_account(holder, data)
    if account.mint != mint:
        raise ValueError(f"token account {holder} belongs to mint {account.mint}, not {mint}")
    return account


async def get_token_mint(ledger: LedgerClient, mint: Pubkey) -> MintInfo:
    data = await ledger.get_account_info(mint)
    if data is None:
        raise AccountNotFound(f"mint account {mint} not found")
    return decode_mint(mint, data)
