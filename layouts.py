"""
Binary layouts of the on-chain accounts read by the scanner.

Covers the Metaplex token-metadata accounts (Metadata, Edition, MasterEdition
V1/V2) and the two SPL Token accounts (token account, mint), plus the PDA
derivations used to find metadata and edition accounts from a mint.

Every decoder is a pure function over raw account bytes and raises LayoutError
on malformed input.
"""

import struct
from typing import List, Optional, Tuple

from solders.pubkey import Pubkey

from models import (
    AccountState,
    Creator,
    EditionData,
    MasterEditionData,
    MetadataKey,
    MintInfo,
    OnChainMetadata,
    TokenAccountInfo,
)

METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")

METADATA_PREFIX = b"metadata"
EDITION_SUFFIX = b"edition"

MAX_NAME_LENGTH = 32
MAX_SYMBOL_LENGTH = 10
MAX_URI_LENGTH = 200
MAX_CREATOR_LIMIT = 5
MAX_CREATOR_LEN = 32 + 1 + 1

# key + update_authority + mint + padded name/symbol/uri + seller fee + creators option flag + vec len
CREATOR_ARRAY_START = (
    1 + 32 + 32
    + 4 + MAX_NAME_LENGTH
    + 4 + MAX_SYMBOL_LENGTH
    + 4 + MAX_URI_LENGTH
    + 2 + 1 + 4
)
UPDATE_AUTHORITY_OFFSET = 1
MINT_OFFSET = 33
EDITION_PARENT_OFFSET = 1

TOKEN_ACCOUNT_LEN = 165
MINT_LEN = 82


class LayoutError(ValueError):
    """Raised when account bytes do not match the expected layout."""


def creator_offset(position: int) -> int:
    """Byte offset of the creator stored at ``position`` in a padded metadata account."""
    if not 0 <= position < MAX_CREATOR_LIMIT:
        raise ValueError(f"creator position must be in [0, {MAX_CREATOR_LIMIT}), got {position}")
    return CREATOR_ARRAY_START + position * MAX_CREATOR_LEN


def get_metadata_pda(mint: Pubkey) -> Pubkey:
    pda, _ = Pubkey.find_program_address(
        [METADATA_PREFIX, bytes(METADATA_PROGRAM_ID), bytes(mint)],
        METADATA_PROGRAM_ID,
    )
    return pda


def get_edition_pda(mint: Pubkey) -> Pubkey:
    pda, _ = Pubkey.find_program_address(
        [METADATA_PREFIX, bytes(METADATA_PROGRAM_ID), bytes(mint), EDITION_SUFFIX],
        METADATA_PROGRAM_ID,
    )
    return pda


class _Reader:
    """Sequential little-endian reader over borsh-encoded bytes."""

    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.pos = 0

    def remaining(self) -> int:
        return len(self.data) - self.pos

    def take(self, size: int) -> bytes:
        if self.remaining() < size:
            raise LayoutError(f"need {size} bytes at offset {self.pos}, only {self.remaining()} left")
        chunk = self.data[self.pos:self.pos + size]
        self.pos += size
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u16(self) -> int:
        return struct.unpack("<H", self.take(2))[0]

    def u32(self) -> int:
        return struct.unpack("<I", self.take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self.take(8))[0]

    def bool(self) -> bool:
        return self.u8() != 0

    def pubkey(self) -> Pubkey:
        return Pubkey.from_bytes(self.take(32))

    def string(self) -> str:
        length = self.u32()
        raw = self.take(length)
        try:
            return raw.decode("utf-8").rstrip("\x00")
        except UnicodeDecodeError as e:
            raise LayoutError(f"invalid utf-8 string at offset {self.pos - length}: {e}") from e

    def option(self, read):
        flag = self.u8()
        if flag == 0:
            return None
        if flag != 1:
            raise LayoutError(f"invalid option tag {flag} at offset {self.pos - 1}")
        return read()

    def coption_pubkey(self) -> Optional[Pubkey]:
        # SPL COption uses a 4 byte tag followed by a fixed-size payload
        tag = self.u32()
        value = self.pubkey()
        return value if tag == 1 else None

    def coption_u64(self) -> Optional[int]:
        tag = self.u32()
        value = self.u64()
        return value if tag == 1 else None


def _expect_key(reader: _Reader, *expected: MetadataKey) -> int:
    key = reader.u8()
    if key not in expected:
        names = ", ".join(k.name for k in expected)
        raise LayoutError(f"unexpected account key {key}, expected one of: {names}")
    return key


def decode_metadata(data: bytes) -> OnChainMetadata:
    reader = _Reader(data)
    key = _expect_key(reader, MetadataKey.METADATA_V1)
    update_authority = reader.pubkey()
    mint = reader.pubkey()
    name = reader.string()
    symbol = reader.string()
    uri = reader.string()
    seller_fee_basis_points = reader.u16()

    creators: List[Creator] = []
    if reader.u8() == 1:
        for _ in range(reader.u32()):
            creators.append(Creator(address=reader.pubkey(), verified=reader.bool(), share=reader.u8()))

    primary_sale_happened = reader.bool()
    is_mutable = reader.bool()

    # Older accounts end right after is_mutable
    edition_nonce = None
    if reader.remaining() >= 1:
        edition_nonce = reader.option(reader.u8)

    return OnChainMetadata(
        key=key,
        update_authority=update_authority,
        mint=mint,
        name=name,
        symbol=symbol,
        uri=uri,
        seller_fee_basis_points=seller_fee_basis_points,
        creators=creators,
        primary_sale_happened=primary_sale_happened,
        is_mutable=is_mutable,
        edition_nonce=edition_nonce,
    )


def decode_edition(data: bytes) -> EditionData:
    reader = _Reader(data)
    _expect_key(reader, MetadataKey.EDITION_V1)
    return EditionData(parent=reader.pubkey(), edition=reader.u64())


def decode_master_edition(data: bytes) -> MasterEditionData:
    reader = _Reader(data)
    key = _expect_key(reader, MetadataKey.MASTER_EDITION_V1, MetadataKey.MASTER_EDITION_V2)
    supply = reader.u64()
    max_supply = reader.option(reader.u64)
    if key == MetadataKey.MASTER_EDITION_V2:
        return MasterEditionData(supply=supply, max_supply=max_supply)
    return MasterEditionData(
        supply=supply,
        max_supply=max_supply,
        printing_mint=reader.pubkey(),
        one_time_printing_authorization_mint=reader.pubkey(),
    )


def decode_token_account(address: Pubkey, data: bytes) -> TokenAccountInfo:
    if len(data) < TOKEN_ACCOUNT_LEN:
        raise LayoutError(f"token account {address} is {len(data)} bytes, expected {TOKEN_ACCOUNT_LEN}")
    reader = _Reader(data)
    mint = reader.pubkey()
    owner = reader.pubkey()
    amount = reader.u64()
    delegate = reader.coption_pubkey()
    raw_state = reader.u8()
    try:
        state = AccountState(raw_state)
    except ValueError as e:
        raise LayoutError(f"invalid token account state {raw_state}") from e
    is_native = reader.coption_u64()
    delegated_amount = reader.u64()
    close_authority = reader.coption_pubkey()
    return TokenAccountInfo(
        address=address,
        mint=mint,
        owner=owner,
        amount=amount,
        delegate=delegate,
        state=state,
        is_native=is_native,
        delegated_amount=delegated_amount,
        close_authority=close_authority,
    )


def decode_mint(address: Pubkey, data: bytes) -> MintInfo:
    if len(data) < MINT_LEN:
        raise LayoutError(f"mint {address} is {len(data)} bytes, expected {MINT_LEN}")
    reader = _Reader(data)
    mint_authority = reader.coption_pubkey()
    supply = reader.u64()
    decimals = reader.u8()
    is_initialized = reader.bool()
    freeze_authority = reader.coption_pubkey()
    return MintInfo(
        address=address,
        mint_authority=mint_authority,
        supply=supply,
        decimals=decimals,
        is_initialized=is_initialized,
        freeze_authority=freeze_authority,
    )


def read_key(data: bytes) -> Optional[int]:
    """First byte of an account, or None for an empty buffer."""
    return data[0] if data else None


def split_creator_filters(creators: List[Pubkey]) -> List[Tuple[Pubkey, int]]:
    """Every (creator, offset) pair needed to match a creator in any of the five slots."""
    return [(creator, creator_offset(position)) for creator in creators for position in range(MAX_CREATOR_LIMIT)]
