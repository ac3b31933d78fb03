"""Tests for the airdrop SQLModel repositories and the activity store."""
from __future__ import annotations

import unittest
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, create_engine

from airdrop_node.db import (
    DBActivityStore,
    DBAirdropLeafRepository,
    DBAirdropScoreRepository,
    DBAirdropSnapshotRepository,
)
from airdrop_node.db.tables import (
    AirdropLeafRow,
    AirdropScoreRow,
    AirdropSnapshotRow,
    UserBrandVoteRow,
    UserRow,
)
from airdrop_node.entities.airdrop import AirdropScoreRecord, LeafRecord, SnapshotStatus
from airdrop_node.errors import ParticipantNotFoundError, SnapshotFrozenError
from airdrop_node.merkle.hasher import leaf_hash, to_hex


def _make_engine():
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
    return engine


def _score(fid: int, final_score: int, **overrides) -> AirdropScoreRecord:
    defaults = dict(
        fid=fid,
        base_points=final_score,
        multipliers={"follow_accounts": Decimal("1.2")},
        total_multiplier=Decimal("1.2"),
        final_score=final_score,
    )
    defaults.update(overrides)
    return AirdropScoreRecord(**defaults)


def _leaf(fid: int, amount: int, rank: int = 1) -> LeafRecord:
    return LeafRecord(
        fid=fid,
        base_amount=amount,
        leaf_hash=to_hex(leaf_hash(fid, amount)),
        rank=rank,
        percentage=0.0,
        final_score=amount,
    )


class TestDBAirdropScoreRepository(unittest.TestCase):
    def setUp(self):
        self.engine = _make_engine()
        self.session = Session(self.engine)
        self.repo = DBAirdropScoreRepository(self.session)

    def tearDown(self):
        self.session.close()

    def test_save_and_get_round_trips_multipliers(self):
        self.repo.save(_score(1, 120))

        stored = self.repo.get(1)
        self.assertEqual(stored.final_score, 120)
        self.assertEqual(stored.multipliers["follow_accounts"], Decimal("1.2"))
        self.assertEqual(stored.multipliers["pro_user"], Decimal("1.0"))
        self.assertEqual(stored.total_multiplier, Decimal("1.2"))
        self.assertEqual(stored.token_allocation, 0)

    def test_get_unknown_returns_none(self):
        self.assertIsNone(self.repo.get(404))

    def test_save_preserves_existing_allocation(self):
        self.repo.save(_score(1, 100))
        self.repo.update_allocations({1: (5000, 100.0)})

        self.repo.save(_score(1, 150, token_allocation=0, percentage=0.0))

        stored = self.repo.get(1)
        self.assertEqual(stored.final_score, 150)
        self.assertEqual(stored.token_allocation, 5000)
        self.assertEqual(stored.percentage, 100.0)

    def test_top_by_final_score_breaks_ties_by_fid(self):
        for fid, score in [(5, 100), (2, 100), (9, 300), (1, 0)]:
            self.repo.save(_score(fid, score))

        top = self.repo.top_by_final_score(10)
        self.assertEqual([r.fid for r in top], [9, 2, 5, 1])

        positive = self.repo.top_by_final_score(10, positive_only=True)
        self.assertEqual([r.fid for r in positive], [9, 2, 5])

        self.assertEqual([r.fid for r in self.repo.top_by_final_score(2)], [9, 2])

    def test_top_by_final_score_rejects_non_positive_limit(self):
        self.repo.save(_score(1, 10))
        with self.assertRaises(ValueError):
            self.repo.top_by_final_score(0)
        with self.assertRaises(ValueError):
            self.repo.top_by_final_score(-3)

    def test_count(self):
        self.assertEqual(self.repo.count(), 0)
        self.repo.save(_score(1, 10))
        self.repo.save(_score(2, 0))
        self.assertEqual(self.repo.count(), 2)

    def test_count_higher(self):
        for fid, score in [(1, 10), (2, 20), (3, 30), (4, 30)]:
            self.repo.save(_score(fid, score))
        self.assertEqual(self.repo.count_higher(30), 0)
        self.assertEqual(self.repo.count_higher(20), 2)
        self.assertEqual(self.repo.count_higher(0), 4)

    def test_update_allocations_resets_missing_rows(self):
        self.repo.save(_score(1, 10))
        self.repo.save(_score(2, 20))
        self.repo.update_allocations({1: (7, 50.0), 2: (7, 50.0)})

        updated = self.repo.update_allocations({2: (14, 100.0)})

        self.assertEqual(updated, 2)
        self.assertEqual(self.repo.get(1).token_allocation, 0)
        self.assertEqual(self.repo.get(2).token_allocation, 14)

    def test_update_allocations_is_noop_when_unchanged(self):
        self.repo.save(_score(1, 10))
        self.repo.update_allocations({1: (3, 100.0)})
        self.assertEqual(self.repo.update_allocations({1: (3, 100.0)}), 0)


class TestDBAirdropSnapshotRepository(unittest.TestCase):
    def setUp(self):
        self.engine = _make_engine()
        self.session = Session(self.engine)
        self.snapshots = DBAirdropSnapshotRepository(self.session)
        self.leaves = DBAirdropLeafRepository(self.session)

    def tearDown(self):
        self.session.close()

    def _replace(self, leaves, root="0x" + "ab" * 32):
        return self.snapshots.replace(
            merkle_root=root,
            leaves=leaves,
            total_tokens=sum(leaf.base_amount for leaf in leaves),
            token_decimals=0,
        )

    def test_replace_writes_populated_snapshot(self):
        snapshot = self._replace([_leaf(2, 50), _leaf(1, 200)])

        self.assertEqual(snapshot.status, SnapshotStatus.POPULATED)
        self.assertFalse(snapshot.is_frozen)
        self.assertEqual(snapshot.total_participants, 2)
        self.assertEqual(snapshot.total_tokens, 250)
        self.assertIsNone(self.snapshots.get_active())

        loaded = self.leaves.load_leaves_for_snapshot(snapshot.id)
        self.assertEqual([leaf.fid for leaf in loaded], [1, 2])
        self.assertEqual(loaded[0].snapshot_id, snapshot.id)

    def test_freeze_marks_snapshot_active(self):
        snapshot = self.snapshots.freeze(self._replace([_leaf(1, 10)]).id)

        self.assertTrue(snapshot.is_frozen)
        self.assertEqual(snapshot.status, SnapshotStatus.FROZEN)
        self.assertIsNotNone(snapshot.frozen_at)
        self.assertEqual(self.snapshots.get_active().id, snapshot.id)
        self.assertTrue(self.snapshots.has_frozen())

    def test_frozen_snapshot_rejects_leaf_writes(self):
        snapshot = self.snapshots.freeze(self._replace([_leaf(1, 10)]).id)

        with self.assertRaises(SnapshotFrozenError):
            self.leaves.add_all(snapshot.id, [_leaf(2, 20)])

        stored = self.leaves.get(snapshot.id, 1)
        stored.base_amount = 11
        with self.assertRaises(SnapshotFrozenError):
            self.leaves.update(stored)

        self.session.rollback()
        self.assertEqual(self.leaves.count(snapshot.id), 1)
        self.assertEqual(self.leaves.get(snapshot.id, 1).base_amount, 10)

    def test_unfrozen_leaf_can_be_updated(self):
        snapshot = self._replace([_leaf(1, 10)])
        stored = self.leaves.get(snapshot.id, 1)
        stored.base_amount = 12
        self.leaves.update(stored)
        self.assertEqual(self.leaves.get(snapshot.id, 1).base_amount, 12)

    def test_replace_deletes_previous_snapshot_and_leaves(self):
        first = self.snapshots.freeze(self._replace([_leaf(1, 10), _leaf(2, 20)]).id)
        second = self._replace([_leaf(3, 30)])

        self.assertEqual([s.id for s in self.snapshots.find()], [second.id])
        self.assertEqual(self.leaves.count(first.id), 0)
        self.assertEqual(self.leaves.count(second.id), 1)

    def test_failed_replace_keeps_previous_snapshot(self):
        first = self.snapshots.freeze(self._replace([_leaf(1, 10)]).id)

        with self.assertRaises(IntegrityError):
            self._replace([_leaf(5, 50), _leaf(5, 60)])

        active = self.snapshots.get_active()
        self.assertEqual(active.id, first.id)
        self.assertEqual(self.leaves.count(first.id), 1)
        self.assertEqual(len(self.snapshots.find()), 1)

    def test_delete_removes_snapshot_and_leaves(self):
        snapshot = self._replace([_leaf(1, 10)])
        self.snapshots.delete(snapshot.id)
        self.assertIsNone(self.snapshots.get(snapshot.id))
        self.assertEqual(self.leaves.count(snapshot.id), 0)

    def test_large_amounts_survive_storage(self):
        amount = 1_500_000_000 * 10**18
        snapshot = self._replace([_leaf(1, amount)])
        self.assertEqual(self.leaves.get(snapshot.id, 1).base_amount, amount)
        self.assertEqual(self.snapshots.get(snapshot.id).total_tokens, amount)


class TestDBActivityStore(unittest.TestCase):
    def setUp(self):
        self.engine = _make_engine()
        self.session = Session(self.engine)
        self.store = DBActivityStore(self.session)

        self.session.add_all([
            UserRow(fid=1, username="one", points=500),
            UserRow(fid=2, username="two", points=900),
            UserRow(fid=3, username="three", points=500),
            UserRow(fid=4, username="team", points=10_000),
        ])
        self.session.add_all([
            UserBrandVoteRow(fid=1, brand1_id=10, brand2_id=11, brand3_id=12, shared=True, cast_hash="0x01"),
            UserBrandVoteRow(fid=1, brand1_id=10, brand2_id=13, brand3_id=None, shared=True, cast_hash=None),
            UserBrandVoteRow(fid=1, brand1_id=14, brand2_id=11, brand3_id=12, shared=False),
            UserBrandVoteRow(fid=2, brand1_id=10, brand2_id=11, brand3_id=12, shared=True, cast_hash="0x02"),
        ])
        self.session.commit()

    def tearDown(self):
        self.session.close()

    def test_base_points(self):
        self.assertEqual(self.store.get_base_points(2), 900)
        with self.assertRaises(ParticipantNotFoundError):
            self.store.get_base_points(99)

    def test_top_participants_excludes_and_breaks_ties(self):
        top = self.store.top_participants(3, exclude=[4])
        self.assertEqual([p.fid for p in top], [2, 1, 3])
        self.assertEqual(top[0].base_points, 900)

    def test_distinct_vote_targets(self):
        self.assertEqual(self.store.get_distinct_vote_targets(1), 5)
        self.assertEqual(self.store.bulk_distinct_vote_targets([1, 2, 3]), {1: 5, 2: 3, 3: 0})

    def test_share_counts_require_cast_hash(self):
        self.assertEqual(self.store.get_share_count(1), 1)
        self.assertEqual(self.store.bulk_share_counts([1, 2, 3]), {1: 1, 2: 1, 3: 0})

    def test_bulk_queries_with_no_fids(self):
        self.assertEqual(self.store.bulk_distinct_vote_targets([]), {})
        self.assertEqual(self.store.bulk_share_counts([]), {})

    def test_non_positive_limit_rejected(self):
        with self.assertRaises(ValueError):
            self.store.top_participants(0)
        with self.assertRaises(ValueError):
            self.store.top_by_votes(0)

    def test_summary_counts(self):
        self.assertEqual(self.store.count_users(), 4)
        self.assertEqual(self.store.count_votes(), 4)
        self.assertEqual(self.store.count_votes(shared_only=True), 2)
        self.assertEqual(self.store.count_users_with_votes(), 2)
        self.assertEqual(self.store.count_users_with_votes(shared_only=True), 2)
        self.assertEqual(self.store.total_distinct_vote_targets(), 8)

    def test_votes_of_unknown_users_are_not_attributed(self):
        self.session.add(UserBrandVoteRow(fid=77, brand1_id=10, shared=True, cast_hash="0x77"))
        self.session.commit()

        self.assertEqual(self.store.count_votes(), 5)
        self.assertEqual(self.store.count_users_with_votes(), 2)
        self.assertEqual(self.store.total_distinct_vote_targets(), 8)
        self.assertNotIn(77, [fid for fid, _, _ in self.store.top_by_votes(10)])

    def test_top_users_by_activity(self):
        self.assertEqual(self.store.top_by_points(2), [(4, "team", 10_000), (2, "two", 900)])
        self.assertEqual(self.store.top_by_votes(10), [(1, "one", 3), (2, "two", 1)])
        self.assertEqual(self.store.top_by_votes(10, shared_only=True), [(1, "one", 1), (2, "two", 1)])
