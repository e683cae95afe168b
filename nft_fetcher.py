"""
Enrichment pipeline for NFTs

Locates the metadata records for a selector, then enriches every record
concurrently with its holder, token account, mint, off-chain JSON and edition
lineage. Every lookup may fail on its own without affecting the others or the
rest of the batch.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from operator import attrgetter
from typing import Any, List, Optional, Sequence, Tuple

import aiohttp
from solders.pubkey import Pubkey

from edition_resolver import EditionResolver
from external_metadata import fetch_external_metadata
from fallible import join_on_key, ok_to_fail
from holder_lookup import get_holder_by_mint, get_token_account, get_token_mint
from ledger_client import LedgerClient
from models import EditionInfo, EnrichedNFT, MetadataRecord, MintInfo, NFTSelector, TokenAccountInfo
from progress import LoadStatus, ProgressSink, ProgressUpdate
from record_locator import locate_metadata_records

logger = logging.getLogger("nft_fetcher")


@dataclass
class RecordEnrichment:
    """Lookup results for one mint, before they are merged onto its base record."""
    mint: Pubkey
    holder_address: Optional[Pubkey] = None
    token_account: Optional[TokenAccountInfo] = None
    mint_info: Optional[MintInfo] = None
    metadata_external: Any = None
    edition: EditionInfo = field(default_factory=EditionInfo)


def merge_enrichment(record: MetadataRecord, enrichment: RecordEnrichment) -> EnrichedNFT:
    return EnrichedNFT(
        mint=record.mint,
        metadata_address=record.metadata_address,
        metadata_onchain=record.onchain,
        holder_address=enrichment.holder_address,
        token_account=enrichment.token_account,
        mint_info=enrichment.mint_info,
        metadata_external=enrichment.metadata_external,
        edition=enrichment.edition,
    )


class NFTFetcher:
    """
    Entry point of the scanner.

    Args:
        ledger: Ledger query interface
        progress_sink: Optional callable receiving ProgressUpdate events
        session: Optional aiohttp session for off-chain metadata; one is opened
            per call when omitted
    """

    def __init__(
        self,
        ledger: LedgerClient,
        progress_sink: Optional[ProgressSink] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.ledger = ledger
        self.progress_sink = progress_sink
        self.session = session
        self.edition_resolver = EditionResolver(ledger)

    async def get_nfts(self, selector: NFTSelector) -> List[EnrichedNFT]:
        """
        Returns the enriched NFTs matching ``selector``.

        Raises InvalidSelector when the selector is empty. Errors from the
        initial ledger query propagate; every later lookup is tolerated.
        """
        records = await locate_metadata_records(self.ledger, selector)
        if not records:
            logger.info("No NFTs found")
            return []

        await self._notify(ProgressUpdate(
            status=LoadStatus.LOADING,
            progress=50,
            max_progress=90,
            text=f"Found a total of {len(records)} NFTs. Fetching metadata...",
        ))
        return await self.turn_metadatas_into_nfts(records)

    async def turn_metadatas_into_nfts(self, records: Sequence[MetadataRecord]) -> List[EnrichedNFT]:
        if self.session is not None:
            enrichments = await self._enrich_all(records, self.session)
        else:
            async with aiohttp.ClientSession() as session:
                enrichments = await self._enrich_all(records, session)

        nfts = join_on_key(records, enrichments, key=attrgetter("mint"), merge=merge_enrichment)
        logger.info(f"Prepared a total of {len(nfts)} NFTs")
        return nfts

    async def _enrich_all(self, records: Sequence[MetadataRecord], session: aiohttp.ClientSession) -> List[RecordEnrichment]:
        return await asyncio.gather(*(self._enrich(record, session) for record in records))

    async def _enrich(self, record: MetadataRecord, session: aiohttp.ClientSession) -> RecordEnrichment:
        logger.debug(f"Processing NFT {record.mint}")

        (holder, token_account), mint_info, external, edition = await asyncio.gather(
            self._holder_and_account(record.mint),
            ok_to_fail(get_token_mint, self.ledger, record.mint),
            ok_to_fail(fetch_external_metadata, session, record.onchain.uri),
            ok_to_fail(self.edition_resolver.resolve, record.mint, default=EditionInfo()),
        )

        return RecordEnrichment(
            mint=record.mint,
            holder_address=holder,
            token_account=token_account,
            mint_info=mint_info,
            metadata_external=external,
            edition=edition,
        )

    async def _holder_and_account(self, mint: Pubkey) -> Tuple[Optional[Pubkey], Optional[TokenAccountInfo]]:
        # The token account can only be read once its holder is known
        holder = await ok_to_fail(get_holder_by_mint, self.ledger, mint)
        token_account = await ok_to_fail(get_token_account, self.ledger, mint, holder)
        return holder, token_account

    async def _notify(self, update: ProgressUpdate):
        if self.progress_sink is not None:
            # Sinks may block on network I/O
            await asyncio.to_thread(self.progress_sink, update)
