"""
Decoders for the raw account layouts the filters and pool loader read.

Only the fields that are actually consumed are decoded. Every decoder raises
DecodeError on data that is too short or structurally invalid.
"""
from dataclasses import dataclass
from typing import Optional

from solders.pubkey import Pubkey

from poolguard.errors import DecodeError

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
METADATA_PROGRAM_ID = "metaqbxxUerdq28cj1RbAqKEsbh9EwMaFQBi5kLSeled"

# SPL Token mint: COption<Pubkey> mint_authority, u64 supply, u8 decimals,
# bool is_initialized, COption<Pubkey> freeze_authority
MINT_SIZE = 82

# SPL Token account: mint(32) owner(32) amount(u64) ...
TOKEN_ACCOUNT_SIZE = 165
TOKEN_ACCOUNT_MINT_OFFSET = 0
TOKEN_ACCOUNT_AMOUNT_OFFSET = 64

# Raydium liquidity state v4
AMM_V4_SIZE = 752
AMM_V4_OFFSETS = {
    "base_vault": 336,
    "quote_vault": 368,
    "base_mint": 400,
    "quote_mint": 432,
    "lp_mint": 464,
    "market_id": 528,
}

# OpenBook / Serum market state v3
MARKET_V3_MIN_SIZE = 349
MARKET_V3_OFFSETS = {
    "event_queue": 253,
    "bids": 285,
    "asks": 317,
}

# Metaplex metadata v1 max field lengths
MAX_NAME_LENGTH = 32
MAX_SYMBOL_LENGTH = 10
MAX_URI_LENGTH = 200
CREATOR_SIZE = 34


def read_u64(data: bytes, offset: int) -> int:
    if offset < 0 or offset + 8 > len(data):
        raise DecodeError(f"Cannot read u64 at offset {offset} from {len(data)} bytes")
    return int.from_bytes(data[offset:offset + 8], byteorder="little", signed=False)


def read_pubkey(data: bytes, offset: int) -> str:
    if offset < 0 or offset + 32 > len(data):
        raise DecodeError(f"Cannot read pubkey at offset {offset} from {len(data)} bytes")
    return str(Pubkey.from_bytes(bytes(data[offset:offset + 32])))


def _read_coption_pubkey(data: bytes, offset: int) -> Optional[str]:
    tag = int.from_bytes(data[offset:offset + 4], byteorder="little")
    if tag == 0:
        return None
    if tag != 1:
        raise DecodeError(f"Invalid COption tag {tag} at offset {offset}")
    return read_pubkey(data, offset + 4)


@dataclass(frozen=True)
class MintInfo:
    mint_authority: Optional[str]
    supply: int
    decimals: int
    is_initialized: bool
    freeze_authority: Optional[str]


def decode_mint(data: bytes) -> MintInfo:
    if data is None or len(data) < MINT_SIZE:
        raise DecodeError(f"Mint account must be at least {MINT_SIZE} bytes")
    return MintInfo(
        mint_authority=_read_coption_pubkey(data, 0),
        supply=read_u64(data, 36),
        decimals=data[44],
        is_initialized=bool(data[45]),
        freeze_authority=_read_coption_pubkey(data, 46),
    )


def token_account_amount(data: bytes) -> int:
    """Balance of a token account: u64 little-endian at the fixed amount offset."""
    return read_u64(data, TOKEN_ACCOUNT_AMOUNT_OFFSET)


@dataclass(frozen=True)
class TokenMetadata:
    update_authority: str
    mint: str
    name: str
    symbol: str
    uri: str
    seller_fee_basis_points: int
    primary_sale_happened: bool
    is_mutable: bool


class _Reader:
    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.offset = 0

    def take(self, size: int) -> bytes:
        end = self.offset + size
        if size < 0 or end > len(self.data):
            raise DecodeError(f"Metadata truncated at offset {self.offset} (wanted {size} bytes)")
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u16(self) -> int:
        return int.from_bytes(self.take(2), byteorder="little")

    def u32(self) -> int:
        return int.from_bytes(self.take(4), byteorder="little")

    def pubkey(self) -> str:
        return str(Pubkey.from_bytes(self.take(32)))

    def string(self, max_length: int) -> str:
        length = self.u32()
        if length > max_length:
            raise DecodeError(f"String length {length} exceeds {max_length}")
        raw = self.take(length)
        # padded with NULs up to the max length on chain
        try:
            return raw.decode("utf-8").rstrip("\x00").strip()
        except UnicodeDecodeError as e:
            raise DecodeError(f"Invalid utf-8 string in metadata: {e}") from e

    def boolean(self) -> bool:
        value = self.u8()
        if value > 1:
            raise DecodeError(f"Invalid bool byte {value} at offset {self.offset - 1}")
        return bool(value)


def decode_metadata(data: bytes) -> TokenMetadata:
    """Decode a Metaplex metadata account up to the is_mutable flag."""
    if not data:
        raise DecodeError("Metadata account is empty")
    reader = _Reader(data)
    key = reader.u8()
    if key != 4:  # Key::MetadataV1
        raise DecodeError(f"Unexpected metadata key {key}")
    update_authority = reader.pubkey()
    mint = reader.pubkey()
    name = reader.string(MAX_NAME_LENGTH)
    symbol = reader.string(MAX_SYMBOL_LENGTH)
    uri = reader.string(MAX_URI_LENGTH)
    seller_fee = reader.u16()
    if reader.boolean():
        creators = reader.u32()
        reader.take(creators * CREATOR_SIZE)
    primary_sale_happened = reader.boolean()
    is_mutable = reader.boolean()
    return TokenMetadata(
        update_authority=update_authority,
        mint=mint,
        name=name,
        symbol=symbol,
        uri=uri,
        seller_fee_basis_points=seller_fee,
        primary_sale_happened=primary_sale_happened,
        is_mutable=is_mutable,
    )


def metadata_address(mint: str) -> str:
    """Metaplex metadata PDA: seeds [b"metadata", program id, mint]."""
    program = Pubkey.from_string(METADATA_PROGRAM_ID)
    pda, _bump = Pubkey.find_program_address(
        [b"metadata", bytes(program), bytes(Pubkey.from_string(mint))],
        program,
    )
    return str(pda)


def decode_amm_v4(data: bytes) -> dict:
    if data is None or len(data) != AMM_V4_SIZE:
        size = "no data" if data is None else f"{len(data)} bytes"
        raise DecodeError(f"Account is not an AMM v4 pool ({size}, expected {AMM_V4_SIZE})")
    return {name: read_pubkey(data, offset) for name, offset in AMM_V4_OFFSETS.items()}


def decode_market_v3(data: bytes) -> dict:
    if data is None or len(data) < MARKET_V3_MIN_SIZE:
        raise DecodeError(f"Market account must be at least {MARKET_V3_MIN_SIZE} bytes")
    return {name: read_pubkey(data, offset) for name, offset in MARKET_V3_OFFSETS.items()}
