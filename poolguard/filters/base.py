import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from poolguard.chain.rpc_client import ChainAccessor
from poolguard.models import FilterResult, PoolIdentity
from poolguard.utils.logging_config import logger


class Filter(ABC):
    """
    One safety heuristic run against a pool.

    Subclasses implement `check()` and may raise anything: `execute()` turns every
    exception (including a timeout) into a failed FilterResult, so the pipeline always
    gets a result back. Cancellation is not swallowed.
    """

    name: str = "Filter"    # report name, e.g. "Holder Filter"
    prefix: str = "Filter"  # message prefix, e.g. "Holder"
    subject: str = "pool"   # used in "<prefix> -> Failed to check <subject>"

    def __init__(self, client: ChainAccessor, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout

    @abstractmethod
    async def check(self, pool: PoolIdentity) -> FilterResult:
        ...

    async def execute(self, pool: PoolIdentity) -> FilterResult:
        try:
            if self.timeout:
                return await asyncio.wait_for(self.check(pool), timeout=self.timeout)
            return await self.check(pool)
        except asyncio.TimeoutError:
            logger.error(f"Failed to check {self.subject}: timed out", filter=self.name,
                         mint=pool.base_mint, timeout=self.timeout)
            return self.failure()
        except Exception as e:
            logger.error(f"Failed to check {self.subject}", filter=self.name,
                         mint=pool.base_mint, error=repr(e))
            return self.failure()

    def failure(self) -> FilterResult:
        return FilterResult(ok=False, message=f"{self.prefix} -> Failed to check {self.subject}")

    def passed(self, message: str, **metrics) -> FilterResult:
        return FilterResult(ok=True, message=f"{self.prefix} -> {message}", metrics=metrics)

    def failed(self, message: str, **metrics) -> FilterResult:
        return FilterResult(ok=False, message=f"{self.prefix} -> {message}", metrics=metrics)

    def __repr__(self):
        return f"<{type(self).__name__} name={self.name!r}>"
