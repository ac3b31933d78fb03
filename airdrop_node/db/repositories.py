from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func
from sqlmodel import Session, delete, select

from airdrop_node.db.tables import AirdropLeafRow, AirdropScoreRow, AirdropSnapshotRow
from airdrop_node.entities.airdrop import (
    MULTIPLIER_NAMES,
    AirdropScoreRecord,
    LeafRecord,
    SnapshotRecord,
    SnapshotStatus,
)
from airdrop_node.errors import SnapshotFrozenError


def _to_decimal(value: float | None) -> Decimal:
    return Decimal(str(value if value is not None else 1.0))


class DBAirdropScoreRepository:
    def __init__(self, session: Session):
        self._session = session

    def rollback(self) -> None:
        self._session.rollback()

    def get(self, fid: int) -> AirdropScoreRecord | None:
        row = self._session.get(AirdropScoreRow, fid)
        return self._row_to_domain(row) if row else None

    def save(self, record: AirdropScoreRecord) -> AirdropScoreRecord:
        """Upsert the score columns of a participant.

        Allocation and percentage of an existing row are left untouched;
        only the distribution engine writes them.
        """
        existing = self._session.get(AirdropScoreRow, record.fid)
        row = self._domain_to_row(record)

        if existing is None:
            self._session.add(row)
        else:
            existing.base_points = row.base_points
            for name in MULTIPLIER_NAMES:
                column = f"{name}_multiplier"
                setattr(existing, column, getattr(row, column))
            existing.total_multiplier = row.total_multiplier
            existing.final_score = row.final_score
            existing.updated_at = datetime.now(timezone.utc)
            row = existing

        try:
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        self._session.refresh(row)
        return self._row_to_domain(row)

    def fetch_all(self) -> list[AirdropScoreRecord]:
        rows = self._session.exec(select(AirdropScoreRow).order_by(AirdropScoreRow.fid.asc())).all()
        return [self._row_to_domain(row) for row in rows]

    def count(self) -> int:
        return int(self._session.exec(select(func.count()).select_from(AirdropScoreRow)).one())

    def find_positive(self) -> list[AirdropScoreRecord]:
        rows = self._session.exec(
            select(AirdropScoreRow)
            .where(AirdropScoreRow.final_score > 0)
            .order_by(AirdropScoreRow.fid.asc())
        ).all()
        return [self._row_to_domain(row) for row in rows]

    def top_by_final_score(self, limit: int, *, positive_only: bool = False) -> list[AirdropScoreRecord]:
        """Highest final scores first; ties broken by fid ascending."""
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        stmt = select(AirdropScoreRow)
        if positive_only:
            stmt = stmt.where(AirdropScoreRow.final_score > 0)
        stmt = stmt.order_by(
            AirdropScoreRow.final_score.desc(), AirdropScoreRow.fid.asc(),
        ).limit(int(limit))
        return [self._row_to_domain(row) for row in self._session.exec(stmt).all()]

    def count_higher(self, final_score: int) -> int:
        stmt = select(func.count()).select_from(AirdropScoreRow).where(
            AirdropScoreRow.final_score > final_score,
        )
        return int(self._session.exec(stmt).one())

    def update_allocations(self, allocations: dict[int, tuple[int, float]]) -> int:
        """Write (token_allocation, percentage) for every row in one transaction.

        Rows not present in ``allocations`` are reset to zero.
        """
        now = datetime.now(timezone.utc)
        updated = 0
        try:
            for row in self._session.exec(select(AirdropScoreRow)).all():
                allocation, percentage = allocations.get(row.fid, (0, 0.0))
                if row.token_allocation != allocation or row.percentage != percentage:
                    row.token_allocation = allocation
                    row.percentage = percentage
                    row.updated_at = now
                    updated += 1
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return updated

    @staticmethod
    def _row_to_domain(row: AirdropScoreRow) -> AirdropScoreRecord:
        return AirdropScoreRecord(
            fid=row.fid,
            base_points=int(row.base_points),
            multipliers={
                name: _to_decimal(getattr(row, f"{name}_multiplier")) for name in MULTIPLIER_NAMES
            },
            total_multiplier=_to_decimal(row.total_multiplier),
            final_score=int(row.final_score),
            token_allocation=int(row.token_allocation),
            percentage=float(row.percentage or 0.0),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _domain_to_row(record: AirdropScoreRecord) -> AirdropScoreRow:
        row = AirdropScoreRow(
            fid=record.fid,
            base_points=record.base_points,
            total_multiplier=float(record.total_multiplier),
            final_score=record.final_score,
            token_allocation=record.token_allocation,
            percentage=record.percentage,
            created_at=record.created_at,
            updated_at=datetime.now(timezone.utc),
        )
        for name in MULTIPLIER_NAMES:
            value = record.multipliers.get(name, Decimal("1.0"))
            setattr(row, f"{name}_multiplier", float(value))
        return row


class DBAirdropLeafRepository:
    def __init__(self, session: Session):
        self._session = session

    def load_leaves_for_snapshot(self, snapshot_id: int) -> list[LeafRecord]:
        """All leaves of a snapshot in canonical (fid ascending) order."""
        rows = self._session.exec(
            select(AirdropLeafRow)
            .where(AirdropLeafRow.snapshot_id == snapshot_id)
            .order_by(AirdropLeafRow.fid.asc())
        ).all()
        return [self._row_to_domain(row) for row in rows]

    def get(self, snapshot_id: int, fid: int) -> LeafRecord | None:
        row = self._session.exec(
            select(AirdropLeafRow).where(
                AirdropLeafRow.snapshot_id == snapshot_id, AirdropLeafRow.fid == fid,
            )
        ).first()
        return self._row_to_domain(row) if row else None

    def add_all(self, snapshot_id: int, leaves: Iterable[LeafRecord]) -> int:
        """Stage leaves under an unfrozen snapshot.

        Does not commit: the caller owns the transaction so the whole leaf
        set lands atomically.
        """
        self._ensure_writable(snapshot_id)
        rows = [self._domain_to_row(snapshot_id, leaf) for leaf in leaves]
        self._session.add_all(rows)
        self._session.flush()
        return len(rows)

    def update(self, leaf: LeafRecord) -> None:
        if leaf.snapshot_id is None:
            raise ValueError("leaf.snapshot_id is required")
        self._ensure_writable(leaf.snapshot_id)
        row = self._session.exec(
            select(AirdropLeafRow).where(
                AirdropLeafRow.snapshot_id == leaf.snapshot_id, AirdropLeafRow.fid == leaf.fid,
            )
        ).first()
        if row is None:
            raise KeyError(f"leaf for fid {leaf.fid} not found in snapshot {leaf.snapshot_id}")
        row.base_amount = str(leaf.base_amount)
        row.leaf_hash = leaf.leaf_hash
        row.rank = leaf.rank
        row.percentage = leaf.percentage
        row.final_score = leaf.final_score
        self._session.commit()

    def delete_all(self) -> None:
        """Remove every leaf of every snapshot. Does not commit."""
        self._session.exec(delete(AirdropLeafRow))

    def count(self, snapshot_id: int) -> int:
        stmt = select(func.count()).select_from(AirdropLeafRow).where(
            AirdropLeafRow.snapshot_id == snapshot_id,
        )
        return int(self._session.exec(stmt).one())

    def _ensure_writable(self, snapshot_id: int) -> None:
        snapshot = self._session.get(AirdropSnapshotRow, snapshot_id)
        if snapshot is not None and snapshot.is_frozen:
            raise SnapshotFrozenError(snapshot_id)

    @staticmethod
    def _row_to_domain(row: AirdropLeafRow) -> LeafRecord:
        return LeafRecord(
            fid=row.fid,
            base_amount=int(row.base_amount),
            leaf_hash=row.leaf_hash,
            rank=row.rank,
            percentage=float(row.percentage or 0.0),
            final_score=int(row.final_score),
            snapshot_id=row.snapshot_id,
        )

    @staticmethod
    def _domain_to_row(snapshot_id: int, leaf: LeafRecord) -> AirdropLeafRow:
        return AirdropLeafRow(
            snapshot_id=snapshot_id,
            fid=leaf.fid,
            base_amount=str(leaf.base_amount),
            leaf_hash=leaf.leaf_hash,
            rank=leaf.rank,
            percentage=leaf.percentage,
            final_score=leaf.final_score,
        )


class DBAirdropSnapshotRepository:
    def __init__(self, session: Session):
        self._session = session
        self._leaves = DBAirdropLeafRepository(session)

    def rollback(self) -> None:
        self._session.rollback()

    def get(self, snapshot_id: int) -> SnapshotRecord | None:
        row = self._session.get(AirdropSnapshotRow, snapshot_id)
        return self._row_to_domain(row) if row else None

    def get_active(self) -> SnapshotRecord | None:
        """The most recent frozen snapshot."""
        row = self._session.exec(
            select(AirdropSnapshotRow)
            .where(AirdropSnapshotRow.is_frozen.is_(True))
            .order_by(AirdropSnapshotRow.created_at.desc(), AirdropSnapshotRow.id.desc())
        ).first()
        return self._row_to_domain(row) if row else None

    def find(self) -> list[SnapshotRecord]:
        rows = self._session.exec(select(AirdropSnapshotRow).order_by(AirdropSnapshotRow.id.asc())).all()
        return [self._row_to_domain(row) for row in rows]

    def has_frozen(self) -> bool:
        return self.get_active() is not None

    def replace(
        self,
        *,
        merkle_root: str,
        leaves: list[LeafRecord],
        total_tokens: int,
        token_decimals: int,
    ) -> SnapshotRecord:
        """Delete every prior snapshot and write a populated one, atomically.

        Leaves are removed explicitly before their snapshots. On any failure
        the transaction is rolled back and the previous snapshot survives.
        """
        try:
            self._leaves.delete_all()
            self._session.exec(delete(AirdropSnapshotRow))

            row = AirdropSnapshotRow(
                merkle_root=None,
                total_participants=0,
                total_tokens="0",
                token_decimals=token_decimals,
                status=SnapshotStatus.EMPTY,
                is_frozen=False,
            )
            self._session.add(row)
            self._session.flush()

            count = self._leaves.add_all(row.id, leaves)

            row.merkle_root = merkle_root
            row.total_participants = count
            row.total_tokens = str(total_tokens)
            row.status = SnapshotStatus.POPULATED
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        self._session.refresh(row)
        return self._row_to_domain(row)

    def freeze(self, snapshot_id: int) -> SnapshotRecord:
        row = self._session.get(AirdropSnapshotRow, snapshot_id)
        if row is None:
            raise KeyError(f"snapshot {snapshot_id} not found")
        try:
            row.is_frozen = True
            row.status = SnapshotStatus.FROZEN
            row.frozen_at = datetime.now(timezone.utc)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        self._session.refresh(row)
        return self._row_to_domain(row)

    def delete(self, snapshot_id: int) -> None:
        try:
            self._session.exec(delete(AirdropLeafRow).where(AirdropLeafRow.snapshot_id == snapshot_id))
            self._session.exec(delete(AirdropSnapshotRow).where(AirdropSnapshotRow.id == snapshot_id))
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

    @staticmethod
    def _row_to_domain(row: AirdropSnapshotRow) -> SnapshotRecord:
        return SnapshotRecord(
            id=row.id,
            merkle_root=row.merkle_root,
            total_participants=row.total_participants,
            total_tokens=int(row.total_tokens or 0),
            token_decimals=row.token_decimals,
            status=SnapshotStatus(row.status),
            is_frozen=bool(row.is_frozen),
            created_at=row.created_at,
            frozen_at=row.frozen_at,
        )
