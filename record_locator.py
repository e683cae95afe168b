# Filename: record_locator.py

import logging
from typing import List

from ledger_client import LedgerClient
from models import MetadataRecord, NFTSelector

logger = logging.getLogger("record_locator")


class InvalidSelector(ValueError):
    """No owner, creators, mint or update authority was given."""


async def locate_metadata_records(ledger: LedgerClient, selector: NFTSelector) -> List[MetadataRecord]:
    """
    Returns every metadata record matching the selector.

    Only one selector is honoured, in the order owner, creators, mint,
    update_authority. Ledger errors are not caught.
    """
    kind = selector.kind()

    if kind == "owner":
        logger.info(f"Time to get em NFTs! owner={selector.owner}")
        records = await ledger.find_records_by_owner(selector.owner)
        logger.info(f"Found a total of {len(records)} NFTs for owner: {selector.owner}")
    elif kind == "creators":
        creators = ", ".join(str(c) for c in selector.creators)
        logger.info(f"Time to get em NFTs! creators=[{creators}]")
        records = await ledger.find_records_by_creators(selector.creators)
        logger.info(f"Found a total of {len(records)} NFTs for creators: [{creators}]")
    elif kind == "mint":
        logger.info(f"Time to get em NFTs! mint={selector.mint}")
        records = await ledger.find_records_by_mint(selector.mint)
        logger.info(f"Found a total of {len(records)} NFTs for mint: {selector.mint}")
    elif kind == "update_authority":
        logger.info(f"Time to get em NFTs! update_authority={selector.update_authority}")
        records = await ledger.find_records_by_update_authority(selector.update_authority)
        logger.info(f"Found a total of {len(records)} NFTs for authority: {selector.update_authority}")
    else:
        raise InvalidSelector("You must pass one of owner / creators / mint / update_authority")

    return records
