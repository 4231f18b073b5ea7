from typing import Optional

from poolguard.chain.layouts import decode_mint
from poolguard.chain.rpc_client import ChainAccessor
from poolguard.errors import DecodeError
from poolguard.filters.base import Filter
from poolguard.models import FilterResult, PoolIdentity


class BurnFilter(Filter):
    """
    Passes when the LP mint supply is at or below `max_lp_supply`,
    i.e. the liquidity provider tokens were burned.
    """
    name = "Burn Filter"
    prefix = "Burn"
    subject = "if LP is burned"

    def __init__(self, client: ChainAccessor, max_lp_supply: int = 0, timeout: Optional[float] = None):
        super().__init__(client, timeout)
        self.max_lp_supply = max_lp_supply

    async def check(self, pool: PoolIdentity) -> FilterResult:
        data = await self.client.get_account_info(pool.lp_mint)
        if data is None:
            raise DecodeError(f"LP mint {pool.lp_mint} not found")

        supply = decode_mint(data).supply
        if supply > self.max_lp_supply:
            return self.failed(
                f"Creator didn't burn LP: {supply} LP units remain", lp_supply=supply, lp_burned=False
            )
        return self.passed(f"LP burned, {supply} LP units remain", lp_supply=supply, lp_burned=True)
