# Filename: main.py

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from solders.pubkey import Pubkey

from config import DEFAULT_CONFIG_FILE, apply_overrides, load_config, save_config
from edition_resolver import EditionResolver
from exporter import SUPPORTED_FORMATS, dumps_nfts, export_nfts
from ledger_client import LedgerClient
from models import NFTSelector
from nft_fetcher import NFTFetcher
from progress import LoggingProgressSink, TelegramProgressSink
from record_locator import InvalidSelector

logger = logging.getLogger("Main")


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)]
    )


def parse_pubkey(value: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except Exception as e:
        raise argparse.ArgumentTypeError(f"invalid address {value!r}: {e}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Enumerate and enrich Solana NFTs.")
    selector = parser.add_mutually_exclusive_group()
    selector.add_argument("--owner", type=parse_pubkey, help="Wallet owning the NFTs")
    selector.add_argument("--creator", type=parse_pubkey, action="append", dest="creators",
                          help="Creator address (repeatable)")
    selector.add_argument("--mint", type=parse_pubkey, help="Mint address")
    selector.add_argument("--update-authority", type=parse_pubkey, help="Update authority address")
    selector.add_argument("--editions-of", type=parse_pubkey, metavar="MASTER_EDITION",
                          help="List every print of a master edition account")
    parser.add_argument("--output", help="Write results to this file instead of stdout")
    parser.add_argument("--format", choices=SUPPORTED_FORMATS, help="Output file format")
    parser.add_argument("--rpc", help="RPC endpoint (overrides config)")
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="Configuration file")
    parser.add_argument("--save-config", action="store_true",
                        help="Persist --rpc, --format and --output into the configuration file")
    return parser


def has_target(args: argparse.Namespace) -> bool:
    return any(
        value is not None
        for value in (args.owner, args.creators, args.mint, args.update_authority, args.editions_of)
    )


def build_progress_sink(config: dict):
    if config.get("ENABLE_TELEGRAM") and config.get("TELEGRAM_BOT_TOKEN") and config.get("TELEGRAM_CHAT_ID"):
        return TelegramProgressSink(config["TELEGRAM_BOT_TOKEN"], config["TELEGRAM_CHAT_ID"])
    return LoggingProgressSink()


async def run(args: argparse.Namespace, config: dict) -> int:
    endpoint = config["RPC_HTTP_ENDPOINT"]
    output = config.get("OUTPUT_FILE")
    fmt = config.get("OUTPUT_FORMAT", "json")

    async with LedgerClient(endpoint, commitment=config.get("COMMITMENT", "confirmed")) as ledger:
        if args.editions_of is not None:
            editions = await EditionResolver(ledger).get_editions_from_master(args.editions_of)
            for address, data in editions:
                print(f"{data.edition}\t{address}")
            return 0

        selector = NFTSelector(
            owner=args.owner,
            creators=args.creators,
            mint=args.mint,
            update_authority=args.update_authority,
        )
        fetcher = NFTFetcher(ledger, progress_sink=build_progress_sink(config))
        nfts = await fetcher.get_nfts(selector)

    if output:
        export_nfts(nfts, output, fmt)
    else:
        print(dumps_nfts(nfts))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = apply_overrides(
        load_config(args.config),
        RPC_HTTP_ENDPOINT=args.rpc,
        OUTPUT_FORMAT=args.format,
        OUTPUT_FILE=args.output,
    )
    setup_logging(config.get("LOG_LEVEL", "INFO"))

    if args.save_config:
        if not save_config(config, args.config):
            return 1
        if not has_target(args):
            return 0

    logger.info("🚀 Starting NFT scan...")

    try:
        return asyncio.run(run(args, config))
    except InvalidSelector as e:
        parser.error(str(e))
    except KeyboardInterrupt:
        logger.info("❌ Scan stopped by user.")
        return 130
    except Exception as e:
        logger.error(f"Scan failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
