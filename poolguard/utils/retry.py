import asyncio

import aiohttp
from tenacity import retry, wait_exponential, stop_after_attempt, retry_if_exception_type

RETRYABLE_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)

# Shared policy for RPC and metadata requests
rpc_retry = retry(
    retry=retry_if_exception_type(RETRYABLE_ERRORS),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    reraise=True,
)

__all__ = ['retry', 'wait_exponential', 'stop_after_attempt', 'retry_if_exception_type', 'rpc_retry', 'RETRYABLE_ERRORS']
