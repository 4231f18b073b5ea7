import asyncio
from typing import Dict, Optional

import aiohttp

from poolguard.config import settings
from poolguard.utils.logging_config import logger
from poolguard.utils.retry import rpc_retry


class OffchainMetadataClient:
    """
    Fetches the JSON document a token's metadata URI points to.
    Any failure is reported as None: a missing document just means no socials.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or settings.METADATA_TIMEOUT_SECONDS
        self.session: Optional[aiohttp.ClientSession] = None

    async def start(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(
                headers={"User-Agent": "poolguard/1.0", "Accept": "application/json"},
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
    async def _get(self, uri: str) -> Dict:
        async with self.session.get(uri) as response:
            response.raise_for_status()
            return await response.json(content_type=None)

    async def fetch_json(self, uri: str) -> Optional[Dict]:
        if not uri or not uri.startswith(("http://", "https://")):
            return None
        if not self.session:
            raise RuntimeError("Client not started")

        try:
            data = await self._get(uri)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("Metadata document fetch failed", uri=uri, error=str(e))
            return None

        return data if isinstance(data, dict) else None
