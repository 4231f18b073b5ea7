from typing import Optional

from poolguard.chain.layouts import decode_mint
from poolguard.chain.rpc_client import ChainAccessor
from poolguard.filters.base import Filter
from poolguard.models import FilterResult, PoolIdentity


class RenouncedFreezeFilter(Filter):
    name = "Renounced/Freeze Filter"
    prefix = "RenouncedFreeze"
    subject = "if mint is renounced and freezable"

    def __init__(
        self,
        client: ChainAccessor,
        check_renounced: bool = True,
        check_freezable: bool = True,
        timeout: Optional[float] = None,
    ):
        super().__init__(client, timeout)
        self.check_renounced = check_renounced
        self.check_freezable = check_freezable

    async def check(self, pool: PoolIdentity) -> FilterResult:
        if not self.check_renounced and not self.check_freezable:
            return self.passed("Renounced and freeze checks disabled")

        data = await self.client.get_account_info(pool.base_mint)
        if data is None:
            return self.failed("Failed to get account info")

        mint = decode_mint(data)
        renounced = mint.mint_authority is None
        freezable = mint.freeze_authority is not None

        problems = []
        if self.check_renounced and not renounced:
            problems.append("mint more tokens")
        if self.check_freezable and freezable:
            problems.append("freeze accounts")

        if problems:
            return self.failed(
                f"Creator can {' and '.join(problems)}", renounced=renounced, freezable=freezable
            )
        checked = []
        if self.check_renounced:
            checked.append("mint renounced")
        if self.check_freezable:
            checked.append("not freezable")
        return self.passed(
            " and ".join(checked).capitalize(), renounced=renounced, freezable=freezable
        )
