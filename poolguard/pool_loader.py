import asyncio

from poolguard.chain.layouts import decode_amm_v4, decode_market_v3
from poolguard.chain.rpc_client import ChainAccessor
from poolguard.errors import PoolNotFoundError, TransientFetchError
from poolguard.models import PoolIdentity
from poolguard.utils.logging_config import logger

MARKET_RETRY_DELAY = 2.0


async def _fetch_market(client: ChainAccessor, market_id: str) -> dict:
    data = await client.get_account_info(market_id)
    if data is None:
        raise PoolNotFoundError(f"Market {market_id} not found")
    return decode_market_v3(data)


async def load_pool_identity(client: ChainAccessor, pool_id: str) -> PoolIdentity:
    """
    Reads a Raydium AMM v4 pool account and its market to build the PoolIdentity
    the filters run against.
    """
    logger.info("Fetching pool info", pool=pool_id)
    data = await client.get_account_info(pool_id)
    if data is None:
        raise PoolNotFoundError(f"Pool {pool_id} not found or invalid")
    amm = decode_amm_v4(data)

    logger.info("Pool found, fetching market data", pool=pool_id, market=amm["market_id"])
    try:
        market = await _fetch_market(client, amm["market_id"])
    except TransientFetchError as e:
        logger.warning("Market fetch failed, retrying", market=amm["market_id"], error=str(e),
                       delay=MARKET_RETRY_DELAY)
        await asyncio.sleep(MARKET_RETRY_DELAY)
        market = await _fetch_market(client, amm["market_id"])

    return PoolIdentity(
        pool_id=pool_id,
        base_mint=amm["base_mint"],
        quote_mint=amm["quote_mint"],
        base_vault=amm["base_vault"],
        quote_vault=amm["quote_vault"],
        lp_mint=amm["lp_mint"],
        market_id=amm["market_id"],
        market_bids=market["bids"],
        market_asks=market["asks"],
        market_event_queue=market["event_queue"],
    )
