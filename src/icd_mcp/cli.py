"""
CLI runner for the ICD tool.

Usage:
    icd-mcp lookup --code BA00
    icd-mcp lookup --code J18.9 --version 10
    icd-mcp search --query pneumonia --max-results 5
    icd-mcp chapters --version 10
    icd-mcp children --code 1A00
    icd-mcp api --path /icd/release/11/2024-01/mms
    icd-mcp help
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import WHOSettings
from .handlers import handle_action
from .models import ACTIONS, ToolResult
from .who_client import WHOICDClient


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="icd-mcp",
        description="WHO ICD-10 / ICD-11 lookups from the command line",
    )
    parser.add_argument("action", choices=ACTIONS, help="Action to perform")
    parser.add_argument("--code", "-c", help="ICD code (e.g., A00, J18.9, BA00)")
    parser.add_argument("--query", "-q", help="Search terms (ICD-11 only)")
    parser.add_argument("--version", choices=["10", "11"], default=None, help="ICD version (default: 11)")
    parser.add_argument("--chapter", help="Chapter code to filter search results by")
    parser.add_argument("--max-results", "-n", type=int, default=None, help="Maximum search results (default 10)")
    parser.add_argument("--path", help="Raw API path, e.g. /icd/release/11/2024-01/mms")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _arguments(args: argparse.Namespace) -> dict:
    fields = {
        "action": args.action,
        "code": args.code,
        "query": args.query,
        "version": args.version,
        "chapter": args.chapter,
        "max_results": args.max_results,
        "path": args.path,
    }
    return {k: v for k, v in fields.items() if v is not None}


async def run(args: argparse.Namespace, settings: WHOSettings) -> ToolResult:
    if args.action != "help" and not settings.is_configured:
        return ToolResult.error("Error: WHO API credentials not configured (set WHO_CLIENT_ID and WHO_CLIENT_SECRET)")

    async with WHOICDClient(settings) as client:
        return await handle_action(_arguments(args), client)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    result = asyncio.run(run(args, WHOSettings.from_env()))
    stream = sys.stderr if result.is_error else sys.stdout
    print(result.first_text, file=stream)
    return 1 if result.is_error else 0


if __name__ == "__main__":
    sys.exit(main())
