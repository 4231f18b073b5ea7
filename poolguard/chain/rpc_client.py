import base64
import binascii
import itertools
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

import aiohttp

from poolguard.config import settings
from poolguard.errors import DecodeError, RpcError, TransientFetchError
from poolguard.utils.logging_config import logger
from poolguard.utils.rate_limiter import AsyncRateLimiter
from poolguard.utils.retry import RETRYABLE_ERRORS, rpc_retry


@dataclass(frozen=True)
class KeyedAccount:
    address: str
    data: bytes


@dataclass(frozen=True)
class TokenBalance:
    amount: int
    decimals: int


@dataclass(frozen=True)
class MemcmpFilter:
    offset: int
    bytes: str  # base58

    def to_rpc(self) -> Dict:
        return {"memcmp": {"offset": self.offset, "bytes": self.bytes}}


class ChainAccessor(Protocol):
    """What filters need from the chain. SolanaRpcClient is the real one."""

    async def get_account_info(self, address: str) -> Optional[bytes]: ...

    async def get_program_accounts(
        self,
        program_id: str,
        data_size: Optional[int] = None,
        memcmp: Sequence[MemcmpFilter] = (),
    ) -> List[KeyedAccount]: ...

    async def get_token_account_balance(self, address: str) -> TokenBalance: ...


def _decode_data(data: Any) -> bytes:
    # RPC returns ["<base64>", "base64"] for base64 encoding
    if not isinstance(data, (list, tuple)) or len(data) != 2 or data[1] != "base64":
        raise DecodeError(f"Unexpected account data encoding: {data!r:.80}")
    try:
        return base64.b64decode(data[0], validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 account data: {e}") from e


class SolanaRpcClient:
    """
    Minimal async JSON-RPC client for the handful of calls the filters make.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
        max_calls_per_second: Optional[int] = None,
    ):
        self.endpoint = endpoint or settings.RPC_ENDPOINT
        self.commitment = commitment or settings.COMMITMENT_LEVEL
        self.timeout = timeout or settings.RPC_TIMEOUT_SECONDS
        self.rate_limiter = AsyncRateLimiter(
            max_calls=max_calls_per_second or settings.RPC_MAX_CALLS_PER_SECOND,
            period=1.0,
        )
        self.session: Optional[aiohttp.ClientSession] = None
        self._ids = itertools.count(1)

    async def start(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(
                headers={"Content-Type": "application/json", "User-Agent": "poolguard/1.0"},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @rpc_retry
    async def _post(self, payload: Dict) -> Dict:
        await self.rate_limiter.acquire()
        async with self.session.post(self.endpoint, json=payload) as response:
            if response.status == 429:
                logger.warning("RPC rate limit 429", method=payload["method"])
                raise aiohttp.ClientResponseError(
                    response.request_info, response.history, status=429
                )
            response.raise_for_status()
            return await response.json(content_type=None)

    async def call(self, method: str, params: List) -> Any:
        """Sends one JSON-RPC request and returns its `result`."""
        if not self.session:
            raise RuntimeError("Client not started")

        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            data = await self._post(payload)
        except RETRYABLE_ERRORS as e:
            raise TransientFetchError(f"{method} failed: {e!r}") from e
        except ValueError as e:
            raise DecodeError(f"{method} returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise DecodeError(f"{method} returned a non-object response")
        error = data.get("error")
        if error:
            if not isinstance(error, dict):
                raise RpcError(str(error))
            raise RpcError(error.get("message", "unknown error"), code=error.get("code"))
        if "result" not in data:
            raise DecodeError(f"{method} response has no result")
        return data["result"]

    async def get_block_height(self) -> int:
        return await self.call("getBlockHeight", [{"commitment": self.commitment}])

    async def get_account_info(self, address: str) -> Optional[bytes]:
        result = await self.call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": self.commitment}],
        )
        value = result.get("value") if isinstance(result, dict) else None
        if value is None:
            return None
        return _decode_data(value.get("data"))

    async def get_program_accounts(
        self,
        program_id: str,
        data_size: Optional[int] = None,
        memcmp: Sequence[MemcmpFilter] = (),
    ) -> List[KeyedAccount]:
        filters: List[Dict] = []
        if data_size is not None:
            filters.append({"dataSize": data_size})
        filters.extend(m.to_rpc() for m in memcmp)

        config = {"encoding": "base64", "commitment": self.commitment}
        if filters:
            config["filters"] = filters

        result = await self.call("getProgramAccounts", [program_id, config])
        if not isinstance(result, list):
            raise DecodeError("getProgramAccounts did not return a list")

        accounts = []
        for item in result:
            try:
                accounts.append(KeyedAccount(item["pubkey"], _decode_data(item["account"]["data"])))
            except (KeyError, TypeError) as e:
                raise DecodeError(f"Malformed program account entry: {e!r}") from e
        logger.debug("Fetched program accounts", program=program_id, count=len(accounts))
        return accounts

    async def get_token_account_balance(self, address: str) -> TokenBalance:
        result = await self.call(
            "getTokenAccountBalance",
            [address, {"commitment": self.commitment}],
        )
        try:
            value = result["value"]
            return TokenBalance(amount=int(value["amount"]), decimals=int(value["decimals"]))
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Malformed token balance for {address}: {e!r}") from e

