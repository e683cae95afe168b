"""
Edition lineage of a mint

Classifies the edition account derived from a mint as a master edition (V1/V2),
a numbered print or unknown, and for prints follows the parent link to the
master edition.
"""

import logging
from typing import List, Optional, Tuple

from solders.pubkey import Pubkey

from fallible import ok_to_fail
from layouts import EDITION_PARENT_OFFSET, decode_edition, decode_master_edition, get_edition_pda, read_key
from ledger_client import LedgerClient, key_filter, pubkey_filter
from models import EditionData, EditionInfo, EditionType, MasterEditionData, MetadataKey

logger = logging.getLogger("edition_resolver")

_MASTER_TYPES = {
    MetadataKey.MASTER_EDITION_V1: EditionType.MASTER_V1,
    MetadataKey.MASTER_EDITION_V2: EditionType.MASTER_V2,
}


class EditionResolver:
    def __init__(self, ledger: LedgerClient):
        self.ledger = ledger

    async def resolve(self, mint: Pubkey) -> EditionInfo:
        """
        Returns the edition classification of ``mint``.

        A missing or unreadable edition account yields EditionType.UNKNOWN with
        every data field absent. For prints, failing to load the parent master
        edition only leaves the master fields absent.
        """
        pda = get_edition_pda(mint)

        try:
            data = await self.ledger.get_account_info(pda)
        except Exception as e:
            logger.debug(f"Edition account {pda} for {mint} could not be fetched: {e}")
            return EditionInfo()

        edition_type = classify(read_key(data) if data is not None else None)
        if edition_type == EditionType.UNKNOWN:
            return EditionInfo()

        try:
            if edition_type != EditionType.PRINT_V1:
                return EditionInfo(
                    edition_type=edition_type,
                    edition_address=pda,
                    master_edition_address=pda,
                    master_edition_data=decode_master_edition(data),
                )
            edition_data = decode_edition(data)
        except ValueError as e:
            logger.debug(f"Edition account {pda} for {mint} is malformed: {e}")
            return EditionInfo()

        # Parent lookup is best effort
        master_edition_data = await ok_to_fail(self.get_parent_edition, edition_data)
        return EditionInfo(
            edition_type=EditionType.PRINT_V1,
            edition_address=pda,
            edition_data=edition_data,
            master_edition_address=edition_data.parent if master_edition_data is not None else None,
            master_edition_data=master_edition_data,
        )

    async def get_parent_edition(self, edition_data: EditionData) -> MasterEditionData:
        data = await self.ledger.get_account_info(edition_data.parent)
        if data is None:
            raise LookupError(f"master edition {edition_data.parent} not found")
        return decode_master_edition(data)

    async def get_editions_from_master(self, master_edition: Pubkey) -> List[Tuple[Pubkey, EditionData]]:
        """
        Every print of a master edition, ordered by edition number.
        Scans the whole metadata program, so it can be slow on large collections.
        """
        accounts = await self.ledger.get_program_accounts(
            [key_filter(MetadataKey.EDITION_V1), pubkey_filter(EDITION_PARENT_OFFSET, master_edition)]
        )

        editions: List[Tuple[Pubkey, EditionData]] = []
        for address, data in accounts:
            try:
                editions.append((address, decode_edition(data)))
            except ValueError as e:
                logger.warning(f"Skipping malformed edition account {address}: {e}")

        editions.sort(key=lambda pair: pair[1].edition)
        logger.info(f"Found a total of {len(editions)} Editions for ME: {master_edition}")
        return editions


def classify(key: Optional[int]) -> EditionType:
    """Edition type for an account discriminator, UNKNOWN for anything that is not an edition."""
    if key == MetadataKey.EDITION_V1:
        return EditionType.PRINT_V1
    return _MASTER_TYPES.get(key, EditionType.UNKNOWN)
