"""CLI entrypoint for clip discovery and acquisition."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from acquisition import CancellationToken
from config import get_settings
from models import Candidate
from orchestrator import ClipDiscoveryEngine, DiscoveryResult
from utils.exceptions import AcquisitionCancelled
from utils.logger import configure_package_logging


console = Console(stderr=True)


def _split_ids(text: str) -> List[str]:
    return [item.strip() for item in str(text or "").split(",") if item.strip()]


def _print_table(ranked: List[Candidate]) -> None:
    table = Table(title="Ranked candidates", show_header=True)
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Text", justify="right")
    table.add_column("Visual", justify="right")
    table.add_column("Title", style="magenta")
    table.add_column("Query", style="dim")
    for idx, candidate in enumerate(ranked, start=1):
        row = candidate.summary()
        table.add_row(
            str(idx),
            f"{row['final_score']:.0f}",
            "-" if row["text_score"] is None else f"{row['text_score']:.0f}",
            "-" if row["visual_score"] is None else f"{row['visual_score']:.0f}",
            (candidate.title or "")[:60],
            candidate.source_query,
        )
    console.print(table)


async def _run(args: argparse.Namespace) -> dict:
    settings = get_settings()
    async with ClipDiscoveryEngine.from_settings(settings) as engine:
        discovery: DiscoveryResult = await engine.discover(
            args.headline,
            args.text,
            sequence_index=args.sequence_index,
            exclude_identities=_split_ids(args.exclude),
        )
        if args.table:
            _print_table(discovery.ranked)

        if args.command == "discover":
            return discovery.to_dict()

        token = CancellationToken()
        wait: Optional[bool] = True if args.wait else None
        try:
            result = await engine.acquire_best(
                discovery.ranked,
                cancel=token,
                sequence_index=args.sequence_index,
                wait_for_best=wait,
            )
        except AcquisitionCancelled as exc:
            return {"cancelled": True, "reason": str(exc)}

        return result.to_dict()


def main() -> None:
    parser = argparse.ArgumentParser(description="News clip discovery CLI")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("discover", "acquire"):
        cmd = sub.add_parser(name)
        cmd.add_argument("--headline", required=True)
        cmd.add_argument("--text", default="")
        cmd.add_argument("--sequence-index", type=int, default=0)
        cmd.add_argument("--exclude", default="", help="comma-separated identities to skip")
        cmd.add_argument("--table", action="store_true", help="print a ranked table to stderr")
        if name == "acquire":
            cmd.add_argument("--wait", action="store_true", help="wait for the best candidate if it needs preparation")

    args = parser.parse_args()
    configure_package_logging(level=getattr(logging, str(args.log_level).upper(), logging.INFO))

    payload = asyncio.run(_run(args))
    print(json.dumps(payload, ensure_ascii=False, default=str))


if __name__ == "__main__":
    main()
