# Filename: models.py

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from solders.pubkey import Pubkey


class MetadataKey(IntEnum):
    """Leading discriminator byte of every token-metadata program account."""
    UNINITIALIZED = 0
    EDITION_V1 = 1
    MASTER_EDITION_V1 = 2
    RESERVATION_LIST_V1 = 3
    METADATA_V1 = 4
    RESERVATION_LIST_V2 = 5
    MASTER_EDITION_V2 = 6
    EDITION_MARKER = 7


class EditionType(Enum):
    MASTER_V1 = "MasterV1"
    MASTER_V2 = "MasterV2"
    PRINT_V1 = "PrintV1"
    UNKNOWN = "Unknown"


class AccountState(IntEnum):
    UNINITIALIZED = 0
    INITIALIZED = 1
    FROZEN = 2


@dataclass(frozen=True)
class Creator:
    address: Pubkey
    verified: bool
    share: int


@dataclass(frozen=True)
class OnChainMetadata:
    """
    Decoded Metaplex metadata account.
    Strings are stored NUL-padded on chain; decoding strips the padding.
    """
    key: int
    update_authority: Pubkey
    mint: Pubkey
    name: str
    symbol: str
    uri: str
    seller_fee_basis_points: int
    creators: List[Creator] = field(default_factory=list)
    primary_sale_happened: bool = False
    is_mutable: bool = True
    edition_nonce: Optional[int] = None


@dataclass(frozen=True)
class MetadataRecord:
    """Base record produced by the locator. Identity is the mint."""
    mint: Pubkey
    metadata_address: Pubkey
    onchain: OnChainMetadata


@dataclass(frozen=True)
class EditionData:
    """A numbered print, pointing at its parent master edition."""
    parent: Pubkey
    edition: int


@dataclass(frozen=True)
class MasterEditionData:
    supply: int
    max_supply: Optional[int] = None
    # Only present on MasterEditionV1 accounts
    printing_mint: Optional[Pubkey] = None
    one_time_printing_authorization_mint: Optional[Pubkey] = None


@dataclass
class EditionInfo:
    """
    Edition lineage of one mint.

    Masters carry the same address in edition_address and master_edition_address.
    Prints carry their own data (including the parent link); both master fields
    are set only once the parent account was fetched and decoded.
    """
    edition_type: EditionType = EditionType.UNKNOWN
    edition_address: Optional[Pubkey] = None
    edition_data: Optional[EditionData] = None
    master_edition_address: Optional[Pubkey] = None
    master_edition_data: Optional[MasterEditionData] = None


@dataclass(frozen=True)
class TokenAccountInfo:
    address: Pubkey
    mint: Pubkey
    owner: Pubkey
    amount: int
    delegate: Optional[Pubkey]
    state: AccountState
    is_native: Optional[int]
    delegated_amount: int
    close_authority: Optional[Pubkey]


@dataclass(frozen=True)
class MintInfo:
    address: Pubkey
    mint_authority: Optional[Pubkey]
    supply: int
    decimals: int
    is_initialized: bool
    freeze_authority: Optional[Pubkey]


@dataclass
class NFTSelector:
    """
    Exactly one of the fields is honoured, in declaration order:
    owner, creators (non-empty), mint, update_authority.
    """
    owner: Optional[Pubkey] = None
    creators: Optional[List[Pubkey]] = None
    mint: Optional[Pubkey] = None
    update_authority: Optional[Pubkey] = None

    def kind(self) -> Optional[str]:
        if self.owner is not None:
            return "owner"
        if self.creators:
            return "creators"
        if self.mint is not None:
            return "mint"
        if self.update_authority is not None:
            return "update_authority"
        return None


@dataclass
class EnrichedNFT:
    """MetadataRecord joined with its holder, account, mint, external and edition lookups."""
    mint: Pubkey
    metadata_address: Pubkey
    metadata_onchain: OnChainMetadata
    holder_address: Optional[Pubkey] = None
    token_account: Optional[TokenAccountInfo] = None
    mint_info: Optional[MintInfo] = None
    metadata_external: Optional[Dict[str, Any]] = None
    edition: EditionInfo = field(default_factory=EditionInfo)

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(self)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Pubkey):
        return str(value)
    if isinstance(value, Enum):
        return value.name if isinstance(value, IntEnum) else value.value
    if hasattr(value, "__dataclass_fields__"):
        return {name: _jsonable(getattr(value, name)) for name in value.__dataclass_fields__}
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value
