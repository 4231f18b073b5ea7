import asyncio
import time
from typing import List, Optional, Sequence

from poolguard.chain.metadata_client import OffchainMetadataClient
from poolguard.chain.rpc_client import ChainAccessor
from poolguard.config import FilterConfig
from poolguard.errors import ConfigurationError, InvalidPoolError
from poolguard.filters.base import Filter
from poolguard.filters.burn import BurnFilter
from poolguard.filters.holder import HolderFilter
from poolguard.filters.mutable import MutableFilter
from poolguard.filters.pool_size import PoolSizeFilter
from poolguard.filters.renounced import RenouncedFreezeFilter
from poolguard.models import AnalysisVerdict, FilterReport, PoolIdentity
from poolguard.utils.logging_config import logger


def build_filters(
    client: ChainAccessor,
    config: FilterConfig,
    metadata_client: Optional[OffchainMetadataClient] = None,
) -> List[Filter]:
    """
    Filters enabled by `config`, in report order:
    burn, renounced/freeze, mutable/socials, pool size, holders.
    """
    timeout = config.filter_timeout_seconds
    filters: List[Filter] = []

    if config.check_burned:
        filters.append(BurnFilter(client, max_lp_supply=config.max_lp_supply, timeout=timeout))

    if config.check_renounced or config.check_freezable:
        filters.append(RenouncedFreezeFilter(
            client,
            check_renounced=config.check_renounced,
            check_freezable=config.check_freezable,
            timeout=timeout,
        ))

    if config.check_mutable or config.check_socials:
        if config.check_socials and metadata_client is None:
            raise ConfigurationError("check_socials needs an off-chain metadata client")
        filters.append(MutableFilter(
            client,
            metadata_client=metadata_client,
            check_mutable=config.check_mutable,
            check_socials=config.check_socials,
            timeout=timeout,
        ))

    if config.min_pool_size or config.max_pool_size:
        filters.append(PoolSizeFilter(
            client,
            quote_decimals=config.quote_decimals,
            min_pool_size=config.min_pool_amount,
            max_pool_size=config.max_pool_amount,
            quote_symbol=config.quote_symbol,
            timeout=timeout,
        ))

    if config.check_holders:
        filters.append(HolderFilter(
            client,
            max_top_holder_percent=config.max_top_holder_percent,
            min_holder_count=config.min_holder_count,
            timeout=timeout,
        ))

    return filters


class FilterPipeline:
    """
    Runs every filter against one pool and aggregates the results.

    Filters run concurrently (bounded by `max_concurrency`) but the verdict always
    lists reports in the order the filters were given. Nothing is short-circuited.
    """

    def __init__(self, filters: Sequence[Filter], max_concurrency: int = 5):
        if not filters:
            raise ConfigurationError("Pipeline needs at least one filter")
        if max_concurrency < 1:
            raise ConfigurationError(f"max_concurrency must be >= 1, got {max_concurrency}")
        names = [f.name for f in filters]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate filter names: {duplicates}")

        self.filters = tuple(filters)
        self.max_concurrency = max_concurrency

    @classmethod
    def from_config(
        cls,
        client: ChainAccessor,
        config: FilterConfig,
        metadata_client: Optional[OffchainMetadataClient] = None,
    ) -> "FilterPipeline":
        return cls(build_filters(client, config, metadata_client), config.max_concurrent_filters)

    async def analyze(self, pool: PoolIdentity) -> AnalysisVerdict:
        if not isinstance(pool, PoolIdentity):
            raise InvalidPoolError(f"Expected PoolIdentity, got {type(pool).__name__}")

        started = time.monotonic()
        logger.info("Running filters", pool=pool.pool_id, filters=len(self.filters))

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(f: Filter) -> FilterReport:
            async with semaphore:
                result = await f.execute(pool)
            logger.debug("Filter finished", pool=pool.pool_id, filter=f.name, ok=result.ok)
            return FilterReport.from_result(f.name, result)

        # gather keeps submission order, whatever order the filters finish in
        reports = await asyncio.gather(*(run(f) for f in self.filters))
        verdict = AnalysisVerdict(pool_id=pool.pool_id, reports=tuple(reports))

        logger.info(
            "Pool analysis complete",
            pool=pool.pool_id,
            all_passed=verdict.all_passed,
            failed=[r.name for r in verdict.failed],
            elapsed=round(time.monotonic() - started, 3),
        )
        return verdict


async def analyze_pool(
    pool: PoolIdentity,
    client: ChainAccessor,
    config: FilterConfig,
    metadata_client: Optional[OffchainMetadataClient] = None,
) -> AnalysisVerdict:
    """One-shot entry point: build the pipeline from config and analyze a pool."""
    pipeline = FilterPipeline.from_config(client, config, metadata_client)
    return await pipeline.analyze(pool)
