from typing import Optional

from poolguard.chain.rpc_client import ChainAccessor
from poolguard.filters.base import Filter
from poolguard.models import Amount, FilterResult, PoolIdentity
from poolguard.utils.logging_config import logger


class PoolSizeFilter(Filter):
    """
    Passes when the quote vault holds between `min_pool_size` and `max_pool_size`
    (inclusive). A zero bound disables that side.

    Amounts are compared in raw token units, so no precision is lost at the bounds.
    """
    name = "Pool Size Filter"
    prefix = "PoolSize"
    subject = "pool size"

    def __init__(
        self,
        client: ChainAccessor,
        quote_decimals: int,
        min_pool_size: Amount,
        max_pool_size: Amount,
        quote_symbol: str = "",
        timeout: Optional[float] = None,
    ):
        super().__init__(client, timeout)
        self.quote_decimals = quote_decimals
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.quote_symbol = quote_symbol

    async def check(self, pool: PoolIdentity) -> FilterResult:
        balance = await self.client.get_token_account_balance(pool.quote_vault)
        if balance.decimals != self.quote_decimals:
            logger.warning("Quote vault decimals differ from configured quote token",
                           vault=pool.quote_vault, vault_decimals=balance.decimals,
                           quote_decimals=self.quote_decimals)
        pool_size = Amount(balance.amount, balance.decimals)
        unit = f" {self.quote_symbol}" if self.quote_symbol else ""

        if not self.max_pool_size.is_zero() and pool_size > self.max_pool_size:
            return self.failed(f"Pool size {pool_size} > {self.max_pool_size}{unit}", pool_size=str(pool_size))

        if not self.min_pool_size.is_zero() and pool_size < self.min_pool_size:
            return self.failed(f"Pool size {pool_size} < {self.min_pool_size}{unit}", pool_size=str(pool_size))

        return self.passed(f"Pool size {pool_size}{unit}", pool_size=str(pool_size))
