import argparse
import asyncio
import json
import sys

from solders.pubkey import Pubkey

from poolguard.chain.metadata_client import OffchainMetadataClient
from poolguard.chain.rpc_client import SolanaRpcClient
from poolguard.config import settings
from poolguard.errors import ConfigurationError, DecodeError, InvalidPoolError, PoolNotFoundError, TransientFetchError
from poolguard.models import AnalysisVerdict
from poolguard.pipeline import FilterPipeline
from poolguard.pool_loader import load_pool_identity
from poolguard.utils.logging_config import configure_logging, logger

EXIT_PASSED = 0
EXIT_FAILED = 1
EXIT_ERROR = 2


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="poolguard", description="Safety checks for Raydium pools")
    sub = parser.add_subparsers(dest="command", required=True)
    analyze = sub.add_parser("analyze", help="Run every configured filter against a pool")
    analyze.add_argument("pool_id", help="Raydium AMM v4 pool address")
    analyze.add_argument("--json", action="store_true", help="Print the verdict as JSON")
    return parser.parse_args(argv)


def print_verdict(verdict: AnalysisVerdict):
    print("\nFilter Analysis Results:")
    print("=======================")
    for report in verdict.reports:
        print(f"\n{report.name}:")
        print(f"Passed: {report.passed}")
        for key, value in report.details.items():
            print(f"  {key}: {value}")

    print("\nSummary:")
    print("========")
    status = "All filters passed ✅" if verdict.all_passed else "Some filters failed ❌"
    print(f"Overall Status: {status}")
    if not verdict.all_passed:
        print("\nFailed Filters:")
        for report in verdict.failed:
            print(f"- {report.name}: {report.details['message']}")


async def run_analyze(pool_id: str, as_json: bool = False) -> int:
    try:
        Pubkey.from_string(pool_id)
    except ValueError:
        logger.error("Invalid pool ID", pool=pool_id)
        return EXIT_ERROR

    try:
        config = settings.filter_config()
    except ConfigurationError as e:
        logger.error("Invalid filter configuration", error=str(e))
        return EXIT_ERROR

    async with SolanaRpcClient() as client, OffchainMetadataClient() as metadata_client:
        try:
            pipeline = FilterPipeline.from_config(client, config, metadata_client)
            block_height = await client.get_block_height()
            logger.info("Connection successful", endpoint=client.endpoint, block_height=block_height)
            pool = await load_pool_identity(client, pool_id)
        except ConfigurationError as e:
            logger.error("Invalid filter configuration", error=str(e))
            return EXIT_ERROR
        except (PoolNotFoundError, InvalidPoolError, DecodeError, TransientFetchError) as e:
            logger.error("Could not load pool", pool=pool_id, error=str(e))
            return EXIT_ERROR

        verdict = await pipeline.analyze(pool)

    if as_json:
        print(json.dumps(verdict.to_dict(), indent=2, default=str))
    else:
        print_verdict(verdict)
    return EXIT_PASSED if verdict.all_passed else EXIT_FAILED


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging()
    logger.info("Starting pool analysis", env=settings.ENV, command=args.command)

    if args.command == "analyze":
        return asyncio.run(run_analyze(args.pool_id, as_json=args.json))
    return EXIT_ERROR


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
