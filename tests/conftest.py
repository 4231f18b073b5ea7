import asyncio
from typing import Dict, List, Optional

import pytest
import structlog
from solders.pubkey import Pubkey

from poolguard.chain.layouts import TOKEN_ACCOUNT_SIZE, metadata_address
from poolguard.chain.rpc_client import KeyedAccount, TokenBalance
from poolguard.config import FilterConfig
from poolguard.errors import TransientFetchError
from poolguard.models import PoolIdentity


def new_address() -> str:
    return str(Pubkey.new_unique())


def _coption(address: Optional[str]) -> bytes:
    if address is None:
        return b"\x00" * 36
    return (1).to_bytes(4, "little") + bytes(Pubkey.from_string(address))


def mint_bytes(supply=0, decimals=6, mint_authority=None, freeze_authority=None) -> bytes:
    return (
        _coption(mint_authority)
        + supply.to_bytes(8, "little")
        + bytes([decimals, 1])
        + _coption(freeze_authority)
    )


def token_account_bytes(mint: str, amount: int, owner: Optional[str] = None) -> bytes:
    owner_bytes = bytes(Pubkey.from_string(owner)) if owner else bytes(32)
    data = bytes(Pubkey.from_string(mint)) + owner_bytes + amount.to_bytes(8, "little")
    return data.ljust(TOKEN_ACCOUNT_SIZE, b"\x00")


def _borsh_string(value: str, padded_to: int) -> bytes:
    raw = value.encode("utf-8").ljust(padded_to, b"\x00")
    return len(raw).to_bytes(4, "little") + raw


def metadata_bytes(mint: str, name="Test Token", symbol="TEST", uri="https://example.com/test.json",
                   is_mutable=False, creators=1) -> bytes:
    data = b"\x04" + bytes(Pubkey.from_string(new_address())) + bytes(Pubkey.from_string(mint))
    data += _borsh_string(name, 32) + _borsh_string(symbol, 10) + _borsh_string(uri, 200)
    data += (500).to_bytes(2, "little")
    if creators:
        data += b"\x01" + creators.to_bytes(4, "little")
        for _ in range(creators):
            data += bytes(Pubkey.from_string(new_address())) + b"\x01" + bytes([100 // creators])
    else:
        data += b"\x00"
    data += b"\x00" + (b"\x01" if is_mutable else b"\x00")
    # trailing fields the decoder does not read
    return data + b"\x00" * 64


class FakeChainAccessor:
    """In-memory chain: accounts, token accounts per mint, vault balances."""

    def __init__(self):
        self.accounts: Dict[str, bytes] = {}
        self.token_accounts: Dict[str, List[KeyedAccount]] = {}
        self.balances: Dict[str, TokenBalance] = {}
        self.failing: Dict[str, Exception] = {}
        self.delays: Dict[str, float] = {}
        self.calls: List[tuple] = []

    async def _enter(self, method: str, key: str):
        self.calls.append((method, key))
        if key in self.delays:
            await asyncio.sleep(self.delays[key])
        if key in self.failing:
            raise self.failing[key]

    async def get_account_info(self, address: str) -> Optional[bytes]:
        await self._enter("getAccountInfo", address)
        return self.accounts.get(address)

    async def get_program_accounts(self, program_id, data_size=None, memcmp=()):
        mint = memcmp[0].bytes if memcmp else None
        await self._enter("getProgramAccounts", mint)
        accounts = self.token_accounts.get(mint, [])
        if data_size is not None:
            accounts = [a for a in accounts if len(a.data) == data_size]
        return list(accounts)

    async def get_token_account_balance(self, address: str) -> TokenBalance:
        await self._enter("getTokenAccountBalance", address)
        if address not in self.balances:
            raise TransientFetchError(f"could not find account {address}")
        return self.balances[address]

    def set_holders(self, mint: str, amounts: List[int]):
        self.token_accounts[mint] = [
            KeyedAccount(new_address(), token_account_bytes(mint, amount)) for amount in amounts
        ]


class FakeMetadataClient:
    def __init__(self, documents: Optional[Dict[str, dict]] = None):
        self.documents = documents or {}
        self.requested: List[str] = []

    async def fetch_json(self, uri: str):
        self.requested.append(uri)
        return self.documents.get(uri)


def make_pool(**overrides) -> PoolIdentity:
    fields = dict(
        pool_id=new_address(),
        base_mint=new_address(),
        quote_mint="So11111111111111111111111111111111111111112",
        base_vault=new_address(),
        quote_vault=new_address(),
        lp_mint=new_address(),
        market_id=new_address(),
        market_bids=new_address(),
        market_asks=new_address(),
        market_event_queue=new_address(),
    )
    fields.update(overrides)
    return PoolIdentity(**fields)


@pytest.fixture(autouse=True, scope="session")
def quiet_logging():
    structlog.configure(
        processors=[structlog.processors.KeyValueRenderer()],
        logger_factory=structlog.ReturnLoggerFactory(),
    )


# 199 holders at 490 plus one at 2000: top holder = 200000 // 99510 = 2%
HEALTHY_HOLDERS = [2_000] + [490] * 199
METADATA_URI = "https://example.com/token.json"


@pytest.fixture
def pool() -> PoolIdentity:
    return make_pool()


@pytest.fixture
def chain(pool) -> FakeChainAccessor:
    """A pool that passes every filter with the default configuration."""
    fake = FakeChainAccessor()
    fake.accounts[pool.lp_mint] = mint_bytes(supply=0, decimals=9)
    fake.accounts[pool.base_mint] = mint_bytes(supply=1_000_000, decimals=6)
    fake.accounts[metadata_address(pool.base_mint)] = metadata_bytes(
        pool.base_mint, uri=METADATA_URI, is_mutable=False
    )
    fake.balances[pool.quote_vault] = TokenBalance(amount=50 * 10 ** 9, decimals=9)
    fake.set_holders(pool.base_mint, HEALTHY_HOLDERS)
    return fake


@pytest.fixture
def metadata_client() -> FakeMetadataClient:
    return FakeMetadataClient({
        METADATA_URI: {"name": "Test Token", "extensions": {"website": "https://example.com"}},
    })


@pytest.fixture
def config() -> FilterConfig:
    return FilterConfig(
        min_pool_size=20,
        max_pool_size=300,
        min_holder_count=150,
        max_top_holder_percent=5,
        filter_timeout_seconds=2.0,
    )
