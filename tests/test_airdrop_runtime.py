"""Tests for runtime settings, the worker wiring and the CLI."""
from __future__ import annotations

import asyncio
import io
import os
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import AsyncMock, MagicMock, patch

from sqlmodel import Session, SQLModel, create_engine

from airdrop_node.cli.main import build_parser, main
from airdrop_node.config import RuntimeSettings
from airdrop_node.db.tables import (
    AirdropLeafRow,
    AirdropScoreRow,
    AirdropSnapshotRow,
    UserBrandVoteRow,
    UserRow,
)
from airdrop_node.entities.airdrop import ChannelEngagement, SocialProfile
from airdrop_node.errors import EmptyCohortError
from airdrop_node.merkle.hasher import from_hex, leaf_hash
from airdrop_node.merkle.tree import verify_proof
from airdrop_node.schemas import (
    AirdropAnalytics,
    AnalyticsSummary,
    BatchResult,
    DatabaseSummary,
    DistributionResult,
    LeaderboardEntry,
    LeaderboardPage,
)
from airdrop_node.workers.airdrop_worker import AirdropWorker, build_airdrop_service


class TestRuntimeSettings(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = RuntimeSettings.from_env()

        self.assertEqual(settings.total_pool, 1_500_000_000)
        self.assertEqual(settings.top_participants, 1111)
        self.assertEqual(settings.batch_size, 50)
        self.assertEqual(settings.token_decimals, 0)
        self.assertEqual(settings.excluded_fids, ())
        self.assertEqual(settings.follow_target_fids, (1108951, 6946))
        self.assertIsNone(settings.token_usd_price)
        self.assertEqual(settings.airdrop_contract_address, "")
        self.assertEqual(settings.signal_concurrency, 32)

    def test_overrides(self):
        env = {
            "AIRDROP_TOTAL_POOL": "1000",
            "AIRDROP_EXCLUDED_FIDS": "1, 2,,3",
            "AIRDROP_TOKEN_DECIMALS": "18",
            "TOKEN_USD_PRICE": "0.000001365",
            "NEYNAR_API_KEY": "key&",
            "AIRDROP_SIGNAL_TIMEOUT_SECONDS": "0.5",
            "AIRDROP_SIGNAL_CONCURRENCY": "4",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = RuntimeSettings.from_env()

        self.assertEqual(settings.total_pool, 1000)
        self.assertEqual(settings.excluded_fids, (1, 2, 3))
        self.assertEqual(settings.token_decimals, 18)
        self.assertEqual(settings.token_usd_price, 0.000001365)
        self.assertEqual(settings.neynar_api_key, "key")
        self.assertEqual(settings.signal_timeout_seconds, 0.5)
        self.assertEqual(settings.signal_concurrency, 4)


# ── Worker ──


class MemSocialGraph:
    def fetch_profiles(self, fids):
        return {fid: SocialProfile(fid=fid, reputation_score=0.9) for fid in fids}

    def fetch_followed_targets(self, fid):
        return 1

    def fetch_channel_engagement(self, fid):
        return ChannelEngagement()


class MemLedger:
    token_decimals = 0

    def get_token_balance(self, address):
        return 0

    def get_staked_balance(self, address):
        return 0


class TestBuildAirdropService(unittest.TestCase):
    def setUp(self):
        engine = create_engine("sqlite:///:memory:")
        SQLModel.metadata.create_all(
            engine,
            tables=[
                UserRow.__table__,
                UserBrandVoteRow.__table__,
                AirdropScoreRow.__table__,
                AirdropSnapshotRow.__table__,
                AirdropLeafRow.__table__,
            ],
        )
        self.session = Session(engine)
        self.session.add_all([UserRow(fid=fid, points=fid * 100) for fid in range(1, 8)])
        self.session.commit()

        env = {"AIRDROP_TOTAL_POOL": "1000", "AIRDROP_BATCH_COOLDOWN_SECONDS": "0", "AIRDROP_EXCLUDED_FIDS": "7"}
        with patch.dict(os.environ, env, clear=True):
            self.settings = RuntimeSettings.from_env()
        self.service = build_airdrop_service(
            self.session, self.settings, social=MemSocialGraph(), ledger=MemLedger(),
        )

    def tearDown(self):
        self.session.close()

    def test_pipeline_from_scores_to_proofs(self):
        batch = asyncio.run(self.service.run_batch_calculation())
        self.assertEqual(batch.successful, 6)

        distribution = self.service.recalculate_distribution()
        self.assertEqual(distribution.total_participants, 6)
        self.assertLessEqual(distribution.total_allocated, 1000)

        snapshot = self.service.generate_snapshot()
        self.assertEqual(snapshot.total_participants, 6)

        proof = self.service.generate_proof(6)
        self.assertTrue(
            verify_proof(leaf_hash(6, proof.amount), [from_hex(p) for p in proof.proof], from_hex(snapshot.merkle_root))
        )
        self.assertIsNone(self.service.generate_proof(7))

        page = self.service.get_leaderboard(3)
        self.assertEqual([entry.fid for entry in page.entries], [6, 5, 4])

        self.assertTrue(self.service.recalculate_distribution().skipped)

        analytics = self.service.get_analytics()
        self.assertTrue(analytics.snapshot_frozen)
        self.assertEqual(analytics.summary.total_participants, 6)
        self.assertEqual(analytics.summary.total_tokens, distribution.total_allocated)
        self.assertEqual(analytics.top[0].fid, 6)

        summary = self.service.get_database_summary()
        self.assertEqual(summary.total_users, 7)
        self.assertEqual(summary.existing_airdrop_scores, 6)

    def test_no_contract_without_address(self):
        self.assertIsNone(self.service.contract)
        self.assertEqual(self.service.orchestrator.calculator.max_concurrency, 32)

    def test_status_without_contract_exits_with_error(self):
        code, out, err = _run_cli(["status"], self.service)
        self.assertEqual(code, 2)
        self.assertEqual(out, "")
        self.assertIn("error: AIRDROP_CONTRACT_ADDRESS not configured", err)


class TestAirdropWorker(unittest.TestCase):
    def test_run_once_scores_then_distributes(self):
        service = MagicMock()
        service.run_batch_calculation = AsyncMock(
            return_value=BatchResult(cohort_size=2, processed=2, successful=2, failed=0)
        )
        service.recalculate_distribution.return_value = DistributionResult(skipped=True, reason="frozen")

        asyncio.run(AirdropWorker(service).run_once())

        service.run_batch_calculation.assert_awaited_once_with()
        service.recalculate_distribution.assert_called_once_with()

    def test_run_survives_cycle_errors_until_shutdown(self):
        service = MagicMock()
        worker = AirdropWorker(service, interval_seconds=0)
        calls = []

        async def failing_cycle():
            calls.append(1)
            if len(calls) == 2:
                await worker.shutdown()
            raise RuntimeError("neynar down")

        service.run_batch_calculation = failing_cycle

        asyncio.run(worker.run())

        self.assertEqual(len(calls), 2)


# ── CLI ──


def _run_cli(argv, service):
    stdout, stderr = io.StringIO(), io.StringIO()
    with redirect_stdout(stdout), redirect_stderr(stderr):
        code = main(argv, service_factory=lambda: service)
    return code, stdout.getvalue(), stderr.getvalue()


class TestCli(unittest.TestCase):
    def test_parser_commands(self):
        parser = build_parser()
        args = parser.parse_args(["calculate", "--cohort-size", "10", "--batch-size", "5"])
        self.assertEqual((args.command, args.cohort_size, args.batch_size), ("calculate", 10, 5))
        self.assertEqual(parser.parse_args(["proof", "7", "--snapshot-id", "2"]).snapshot_id, 2)

    def test_leaderboard_prints_json(self):
        service = MagicMock()
        service.get_leaderboard.return_value = LeaderboardPage(
            entries=[
                LeaderboardEntry(
                    rank=1, fid=3, base_points=10, total_multiplier=1.2,
                    final_score=12, token_allocation=5, percentage=100.0,
                )
            ]
        )

        code, out, _ = _run_cli(["leaderboard", "--limit", "5"], service)

        self.assertEqual(code, 0)
        self.assertIn('"fid": 3', out)
        service.get_leaderboard.assert_called_once_with(5)

    def test_calculate_runs_batch(self):
        service = MagicMock()
        service.run_batch_calculation = AsyncMock(
            return_value=BatchResult(cohort_size=1, processed=1, successful=1, failed=0)
        )
        code, out, _ = _run_cli(["calculate", "--cohort-size", "1"], service)
        self.assertEqual(code, 0)
        self.assertIn('"successful": 1', out)
        service.run_batch_calculation.assert_awaited_once_with(1, None)

    def test_missing_proof_exits_nonzero(self):
        service = MagicMock()
        service.generate_proof.return_value = None
        code, out, err = _run_cli(["proof", "9"], service)
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("fid 9", err)

    def test_domain_errors_are_reported(self):
        service = MagicMock()
        service.generate_snapshot.side_effect = EmptyCohortError("no participants with a positive score")
        code, _, err = _run_cli(["snapshot"], service)
        self.assertEqual(code, 2)
        self.assertIn("error: no participants", err)

    def test_no_command_prints_help(self):
        code, out, _ = _run_cli([], MagicMock())
        self.assertEqual(code, 1)
        self.assertIn("usage", out)

    def test_parser_rejects_non_positive_sizes(self):
        parser = build_parser()
        for argv in (
            ["calculate", "--cohort-size", "0"],
            ["calculate", "--batch-size", "-1"],
            ["leaderboard", "--limit", "0"],
            ["leaderboard", "--limit", "ten"],
        ):
            with self.subTest(argv=argv), redirect_stderr(io.StringIO()):
                with self.assertRaises(SystemExit) as caught:
                    parser.parse_args(argv)
                self.assertEqual(caught.exception.code, 2)

    def test_analytics_prints_json(self):
        service = MagicMock()
        service.get_analytics.return_value = AirdropAnalytics(
            summary=AnalyticsSummary(total_participants=2, total_tokens=100, average_tokens=50),
            snapshot_frozen=True,
        )

        code, out, _ = _run_cli(["analytics"], service)

        self.assertEqual(code, 0)
        self.assertIn('"total_tokens": 100', out)
        self.assertIn('"snapshot_frozen": true', out)

    def test_summary_prints_json(self):
        service = MagicMock()
        service.get_database_summary.return_value = DatabaseSummary(total_users=3, total_votes=9)

        code, out, _ = _run_cli(["summary"], service)

        self.assertEqual(code, 0)
        self.assertIn('"total_votes": 9', out)
        service.get_database_summary.assert_called_once_with()
