from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Callable

from airdrop_node.errors import AirdropError
from airdrop_node.services import AirdropService

logger = logging.getLogger(__name__)


def positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {raw!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="airdrop", description="Airdrop scoring and snapshot CLI")
    subparsers = parser.add_subparsers(dest="command")

    eligibility = subparsers.add_parser("eligibility", help="Score one participant and show the breakdown")
    eligibility.add_argument("fid", type=int)

    calculate = subparsers.add_parser("calculate", help="Score the top cohort in batches")
    calculate.add_argument(
        "--cohort-size", type=positive_int, default=None, help="Participants to score (default: 1111)",
    )
    calculate.add_argument(
        "--batch-size", type=positive_int, default=None, help="Participants per batch (default: 50)",
    )

    subparsers.add_parser("distribute", help="Recalculate token allocations from current scores")
    subparsers.add_parser("snapshot", help="Generate and freeze the Merkle snapshot")

    proof = subparsers.add_parser("proof", help="Print the inclusion proof of a participant")
    proof.add_argument("fid", type=int)
    proof.add_argument("--snapshot-id", type=int, default=None)

    leaderboard = subparsers.add_parser("leaderboard", help="Show the top participants by final score")
    leaderboard.add_argument("--limit", type=positive_int, default=100)

    subparsers.add_parser("analytics", help="Summarize current allocations, including USD buckets")
    subparsers.add_parser("summary", help="Summarize users and votes in the voting database")
    subparsers.add_parser("status", help="Compare the on-chain root with the frozen snapshot")

    init_db = subparsers.add_parser("init-db", help="Create or migrate the airdrop tables")
    init_db.add_argument("--reset", action="store_true", help="Drop airdrop tables first (destroys data)")

    return parser


def default_service_factory() -> AirdropService:
    from airdrop_node.config import RuntimeSettings
    from airdrop_node.db.session import create_session
    from airdrop_node.workers.airdrop_worker import build_airdrop_service

    return build_airdrop_service(create_session(), RuntimeSettings.from_env())


def _run_command(args: argparse.Namespace, service: AirdropService) -> int:
    if args.command == "eligibility":
        result = asyncio.run(service.compute_eligibility(args.fid))
    elif args.command == "calculate":
        result = asyncio.run(service.run_batch_calculation(args.cohort_size, args.batch_size))
    elif args.command == "distribute":
        result = service.recalculate_distribution()
    elif args.command == "snapshot":
        result = service.generate_snapshot()
    elif args.command == "proof":
        result = service.generate_proof(args.fid, args.snapshot_id)
        if result is None:
            print(f"fid {args.fid} is not eligible in the airdrop snapshot", file=sys.stderr)
            return 1
    elif args.command == "leaderboard":
        result = service.get_leaderboard(args.limit)
    elif args.command == "analytics":
        result = service.get_analytics()
    elif args.command == "summary":
        result = service.get_database_summary()
    else:
        result = service.contract_status()

    print(result.model_dump_json(indent=2))
    return 0


def main(argv: list[str] | None = None, service_factory: Callable[[], AirdropService] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stderr,
    )

    if args.command == "init-db":
        from airdrop_node.db.init_db import migrate, reset_db

        if args.reset:
            reset_db()
        else:
            migrate()
        return 0

    service = (service_factory or default_service_factory)()
    try:
        return _run_command(args, service)
    except AirdropError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


def entrypoint() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    entrypoint()
