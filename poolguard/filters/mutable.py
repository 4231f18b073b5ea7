from typing import Dict, Optional

from poolguard.chain.layouts import decode_metadata, metadata_address
from poolguard.chain.metadata_client import OffchainMetadataClient
from poolguard.chain.rpc_client import ChainAccessor
from poolguard.errors import DecodeError
from poolguard.filters.base import Filter
from poolguard.models import FilterResult, PoolIdentity

SOCIAL_KEYS = ("website", "twitter", "telegram", "discord")


def has_social_links(document: Optional[Dict]) -> bool:
    """
    True when the off-chain metadata document lists at least one non-empty link,
    either under `extensions` or as a top-level social key.
    """
    if not document:
        return False
    extensions = document.get("extensions")
    if isinstance(extensions, dict):
        if any(isinstance(v, str) and v.strip() for v in extensions.values()):
            return True
    return any(isinstance(document.get(k), str) and document[k].strip() for k in SOCIAL_KEYS)


class MutableFilter(Filter):
    name = "Mutable/Socials Filter"
    prefix = "Mutable"
    subject = "if metadata are mutable"

    def __init__(
        self,
        client: ChainAccessor,
        metadata_client: Optional[OffchainMetadataClient] = None,
        check_mutable: bool = True,
        check_socials: bool = True,
        timeout: Optional[float] = None,
    ):
        super().__init__(client, timeout)
        self.metadata_client = metadata_client
        self.check_mutable = check_mutable
        self.check_socials = check_socials

    async def check(self, pool: PoolIdentity) -> FilterResult:
        address = metadata_address(pool.base_mint)
        data = await self.client.get_account_info(address)
        if data is None:
            return self.failed("Failed to fetch account data")

        try:
            metadata = decode_metadata(data)
        except DecodeError as e:
            return self.failed(f"Failed to deserialize metadata: {e}")

        has_socials = True
        if self.check_socials:
            document = None
            if self.metadata_client is not None:
                document = await self.metadata_client.fetch_json(metadata.uri)
            has_socials = has_social_links(document)

        problems = []
        if self.check_mutable and metadata.is_mutable:
            problems.append("Creator can change metadata")
        if self.check_socials and not has_socials:
            problems.append("Token has no socials")

        metrics = dict(symbol=metadata.symbol, mutable=metadata.is_mutable, has_socials=has_socials)
        if problems:
            return self.failed("; ".join(problems), **metrics)
        return self.passed(f"{metadata.symbol or metadata.mint} metadata checks passed", **metrics)
