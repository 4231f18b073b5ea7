from typing import Iterable, Optional, Tuple

from poolguard.chain.layouts import (
    TOKEN_ACCOUNT_MINT_OFFSET,
    TOKEN_ACCOUNT_SIZE,
    TOKEN_PROGRAM_ID,
    token_account_amount,
)
from poolguard.chain.rpc_client import ChainAccessor, MemcmpFilter
from poolguard.filters.base import Filter
from poolguard.models import FilterResult, PoolIdentity


def holder_distribution(balances: Iterable[int]) -> Tuple[int, int]:
    """Returns (total supply, largest single holding)."""
    total_supply = 0
    largest_holding = 0
    for amount in balances:
        total_supply += amount
        if amount > largest_holding:
            largest_holding = amount
    return total_supply, largest_holding


def top_holder_percent(largest_holding: int, total_supply: int) -> int:
    """Truncating integer percentage; 0 when nothing is held."""
    if total_supply <= 0:
        return 0
    return largest_holding * 100 // total_supply


class HolderFilter(Filter):
    name = "Holder Filter"
    prefix = "Holder"
    subject = "holders"

    def __init__(
        self,
        client: ChainAccessor,
        max_top_holder_percent: int = 5,
        min_holder_count: int = 150,
        timeout: Optional[float] = None,
    ):
        super().__init__(client, timeout)
        self.max_top_holder_percent = max_top_holder_percent
        self.min_holder_count = min_holder_count

    async def check(self, pool: PoolIdentity) -> FilterResult:
        accounts = await self.client.get_program_accounts(
            TOKEN_PROGRAM_ID,
            data_size=TOKEN_ACCOUNT_SIZE,
            memcmp=[MemcmpFilter(offset=TOKEN_ACCOUNT_MINT_OFFSET, bytes=pool.base_mint)],
        )

        holder_count = len(accounts)
        if holder_count < self.min_holder_count:
            return self.failed(
                f"Insufficient holders: {holder_count} < {self.min_holder_count}",
                holder_count=holder_count,
            )

        total_supply, largest_holding = holder_distribution(
            token_account_amount(account.data) for account in accounts
        )
        percent = top_holder_percent(largest_holding, total_supply)
        metrics = dict(holder_count=holder_count, total_supply=total_supply, top_holder_percent=percent)

        if percent > self.max_top_holder_percent:
            return self.failed(
                f"Top holder owns too much: {percent}% > {self.max_top_holder_percent}%", **metrics
            )

        return self.passed(f"Passed checks: {holder_count} holders, Top holder: {percent}%", **metrics)
