import pytest

from conftest import metadata_bytes, mint_bytes, new_address, token_account_bytes
from poolguard.chain.layouts import (
    AMM_V4_OFFSETS,
    AMM_V4_SIZE,
    MARKET_V3_OFFSETS,
    decode_amm_v4,
    decode_market_v3,
    decode_metadata,
    decode_mint,
    metadata_address,
    token_account_amount,
)
from poolguard.errors import DecodeError
from solders.pubkey import Pubkey


def test_decode_mint_without_authorities():
    mint = decode_mint(mint_bytes(supply=123, decimals=6))
    assert mint.mint_authority is None
    assert mint.freeze_authority is None
    assert mint.supply == 123
    assert mint.decimals == 6
    assert mint.is_initialized


def test_decode_mint_with_authorities():
    authority, freezer = new_address(), new_address()
    mint = decode_mint(mint_bytes(mint_authority=authority, freeze_authority=freezer))
    assert mint.mint_authority == authority
    assert mint.freeze_authority == freezer


def test_decode_mint_too_short():
    with pytest.raises(DecodeError):
        decode_mint(b"\x00" * 40)


def test_token_account_amount_reads_u64_le_at_offset_64():
    mint = new_address()
    data = token_account_bytes(mint, 2 ** 64 - 1)
    assert token_account_amount(data) == 2 ** 64 - 1
    assert token_account_amount(token_account_bytes(mint, 258)) == 258


def test_token_account_amount_truncated():
    with pytest.raises(DecodeError):
        token_account_amount(b"\x00" * 70)


def test_decode_metadata():
    mint = new_address()
    meta = decode_metadata(metadata_bytes(mint, name="Dog", symbol="DOG", uri="https://x/y.json",
                                          is_mutable=True, creators=2))
    assert meta.mint == mint
    assert meta.name == "Dog"
    assert meta.symbol == "DOG"
    assert meta.uri == "https://x/y.json"
    assert meta.is_mutable is True


def test_decode_metadata_without_creators():
    meta = decode_metadata(metadata_bytes(new_address(), creators=0, is_mutable=False))
    assert meta.is_mutable is False


def test_decode_metadata_truncated():
    data = metadata_bytes(new_address())
    with pytest.raises(DecodeError):
        decode_metadata(data[:100])


def test_decode_metadata_wrong_key():
    data = bytearray(metadata_bytes(new_address()))
    data[0] = 6
    with pytest.raises(DecodeError, match="Unexpected metadata key"):
        decode_metadata(bytes(data))


def test_metadata_address_is_deterministic():
    mint = new_address()
    assert metadata_address(mint) == metadata_address(mint)
    assert metadata_address(mint) != metadata_address(new_address())


def test_decode_amm_v4_and_market_v3():
    keys = {name: new_address() for name in AMM_V4_OFFSETS}
    data = bytearray(AMM_V4_SIZE)
    for name, offset in AMM_V4_OFFSETS.items():
        data[offset:offset + 32] = bytes(Pubkey.from_string(keys[name]))
    assert decode_amm_v4(bytes(data)) == keys

    market_keys = {name: new_address() for name in MARKET_V3_OFFSETS}
    market = bytearray(388)
    for name, offset in MARKET_V3_OFFSETS.items():
        market[offset:offset + 32] = bytes(Pubkey.from_string(market_keys[name]))
    assert decode_market_v3(bytes(market)) == market_keys

    with pytest.raises(DecodeError):
        decode_amm_v4(bytes(100))


@pytest.mark.parametrize("size", [AMM_V4_SIZE - 1, AMM_V4_SIZE + 1, 1000])
def test_decode_amm_v4_requires_exact_size(size):
    with pytest.raises(DecodeError, match="not an AMM v4 pool"):
        decode_amm_v4(bytes(size))
