# Filename: external_metadata.py

import logging
from typing import Any

import aiohttp

logger = logging.getLogger("external_metadata")


async def fetch_external_metadata(session: aiohttp.ClientSession, uri: str) -> Any:
    """
    Fetches the off-chain JSON document referenced by a metadata URI.

    Args:
        session: Session used for the request
        uri: Off-chain metadata URI

    Returns:
        The parsed JSON document, whatever its shape
    """
    if not uri:
        raise ValueError("empty metadata uri")

    async with session.get(uri) as response:
        response.raise_for_status()
        # Many hosts serve metadata as text/plain or octet-stream
        data = await response.json(content_type=None)

    logger.debug(f"Fetched external metadata from {uri}")
    return data
