# Filename: exporter.py

import json
import logging
from typing import List, Sequence

import pandas as pd

from models import EnrichedNFT

logger = logging.getLogger("exporter")

SUPPORTED_FORMATS = ("json", "csv")


def nfts_to_records(nfts: Sequence[EnrichedNFT]) -> List[dict]:
    return [nft.to_dict() for nft in nfts]


def nfts_to_dataframe(nfts: Sequence[EnrichedNFT]) -> pd.DataFrame:
    """
    One row per NFT, nested fields flattened to dotted columns
    (e.g. ``metadata_onchain.name``, ``edition.edition_type``).
    """
    records = nfts_to_records(nfts)
    if not records:
        return pd.DataFrame()

    df = pd.json_normalize(records, max_level=2)
    # Lists (creators, attributes...) do not fit a cell
    for column in df.columns:
        if df[column].map(lambda v: isinstance(v, (list, dict))).any():
            df[column] = df[column].map(lambda v: json.dumps(v) if isinstance(v, (list, dict)) else v)
    return df


def dumps_nfts(nfts: Sequence[EnrichedNFT]) -> str:
    return json.dumps(nfts_to_records(nfts), indent=2)


def export_nfts(nfts: Sequence[EnrichedNFT], path: str, fmt: str = "json") -> str:
    """
    Writes the NFTs to ``path``.

    Args:
        nfts: Enriched NFTs to export
        path: Destination file
        fmt: "json" or "csv"

    Returns:
        The path written
    """
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"unsupported export format {fmt!r}, expected one of {SUPPORTED_FORMATS}")

    if fmt == "json":
        with open(path, "w") as f:
            f.write(dumps_nfts(nfts))
    else:
        nfts_to_dataframe(nfts).to_csv(path, index=False)

    logger.info(f"Exported {len(nfts)} NFTs to {path} ({fmt})")
    return path
