"""Tests for the token distribution engine."""
from __future__ import annotations

import random
import unittest
from fractions import Fraction

from sqlmodel import Session, SQLModel, create_engine

from airdrop_node.db import DBAirdropScoreRepository, DBAirdropSnapshotRepository
from airdrop_node.db.tables import AirdropLeafRow, AirdropScoreRow, AirdropSnapshotRow
from airdrop_node.entities.airdrop import AirdropScoreRecord
from airdrop_node.services.distribution import TOTAL_POOL, DistributionEngine, allocate, usd_buckets


def _make_engine():
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(
        engine,
        tables=[AirdropScoreRow.__table__, AirdropSnapshotRow.__table__, AirdropLeafRow.__table__],
    )
    return engine


class TestAllocate:
    def test_proportional_split(self):
        allocations = allocate([(1, 100), (2, 300)], 1000)
        assert allocations == {1: (250, 25.0), 2: (750, 75.0)}

    def test_zero_and_negative_scores_get_nothing(self):
        allocations = allocate([(1, 0), (2, 10), (3, -5)], 100)
        assert allocations[1] == (0, 0.0)
        assert allocations[3] == (0, 0.0)
        assert allocations[2] == (100, 100.0)

    def test_all_zero_scores(self):
        assert allocate([(1, 0), (2, 0)], 100) == {1: (0, 0.0), 2: (0, 0.0)}

    def test_rounds_half_up(self):
        # exact shares 2.5, 1.25, 1.25
        allocations = allocate([(1, 2), (2, 1), (3, 1)], 5)
        assert [allocations[fid][0] for fid in (1, 2, 3)] == [3, 1, 1]

    def test_overshoot_removed_from_largest_round_up_lowest_fid_first(self):
        # exact shares are 1.5 each; rounding both up would hand out 4 of 3
        allocations = allocate([(2, 1), (1, 1)], 3)
        assert allocations[1][0] == 1
        assert allocations[2][0] == 2
        assert sum(amount for amount, _ in allocations.values()) == 3

    def test_no_overshoot_when_rounding_down(self):
        allocations = allocate([(1, 1), (2, 1), (3, 1)], 100)
        assert [allocations[fid][0] for fid in (1, 2, 3)] == [33, 33, 33]

    def test_conservation_over_random_cohorts(self):
        rng = random.Random(1111)
        for _ in range(25):
            scores = [(fid, rng.choice([0, rng.randint(1, 10**9)])) for fid in range(1, rng.randint(2, 300))]
            allocations = allocate(scores, TOTAL_POOL)
            total = sum(score for _, score in scores if score > 0)

            assert sum(amount for amount, _ in allocations.values()) <= TOTAL_POOL
            for fid, score in scores:
                amount, _ = allocations[fid]
                assert amount >= 0
                if score <= 0:
                    assert amount == 0
                else:
                    assert abs(amount - Fraction(score * TOTAL_POOL, total)) <= 1


class TestUsdBuckets:
    def test_buckets_by_value(self):
        buckets = usd_buckets([0, 1_000_000, 3_000_000, 25_000_000, 40_000_000], 0.000001)
        assert buckets == {
            "under_1": 1,
            "1_to_5": 2,
            "5_to_10": 0,
            "10_to_20": 0,
            "20_to_30": 1,
            "over_30": 1,
        }


class TestDistributionEngine(unittest.TestCase):
    def setUp(self):
        self.engine = _make_engine()
        self.session = Session(self.engine)
        self.scores = DBAirdropScoreRepository(self.session)
        self.snapshots = DBAirdropSnapshotRepository(self.session)
        for fid, final_score in [(1, 100), (2, 300), (3, 0), (4, 600)]:
            self.scores.save(AirdropScoreRecord(fid=fid, base_points=final_score, final_score=final_score))
        self.distribution = DistributionEngine(
            self.scores, self.snapshots, total_pool=TOTAL_POOL, token_usd_price=0.000001365,
        )

    def tearDown(self):
        self.session.close()

    def _allocations(self):
        return {r.fid: (r.token_allocation, r.percentage) for r in self.scores.fetch_all()}

    def test_recalculate_writes_allocations(self):
        result = self.distribution.recalculate()

        self.assertFalse(result.skipped)
        self.assertEqual(result.total_participants, 3)
        self.assertEqual(result.total_points, 1000)
        self.assertEqual(result.zero_score_participants, 1)
        self.assertEqual(result.total_allocated, TOTAL_POOL)
        self.assertEqual(sum(result.usd_buckets.values()), 3)

        allocations = self._allocations()
        self.assertEqual(allocations[4], (900_000_000, 60.0))
        self.assertEqual(allocations[3], (0, 0.0))

    def test_recalculate_is_idempotent(self):
        self.distribution.recalculate()
        first = self._allocations()
        self.distribution.recalculate()
        self.assertEqual(self._allocations(), first)

    def test_skipped_when_snapshot_frozen(self):
        self.distribution.recalculate()
        before = self._allocations()
        snapshot = self.snapshots.replace(merkle_root="0x" + "00" * 32, leaves=[], total_tokens=0, token_decimals=0)
        self.snapshots.freeze(snapshot.id)
        self.scores.save(AirdropScoreRecord(fid=1, base_points=5000, final_score=5000))

        result = self.distribution.recalculate()

        self.assertTrue(result.skipped)
        self.assertEqual(self._allocations(), before)

    def test_usd_buckets_empty_without_price(self):
        engine = DistributionEngine(self.scores, self.snapshots, total_pool=1000)
        self.assertEqual(engine.recalculate().usd_buckets, {})
