"""Read-only access to the voting backend's users and podium votes."""
from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from sqlalchemy import func
from sqlmodel import Session, select

from airdrop_node.db.tables import UserBrandVoteRow, UserRow
from airdrop_node.entities.airdrop import Participant
from airdrop_node.errors import ParticipantNotFoundError

# a vote counts as a shared podium only once its cast exists
_SHARED = (UserBrandVoteRow.shared.is_(True), UserBrandVoteRow.cast_hash.is_not(None))


class DBActivityStore:
    def __init__(self, session: Session):
        self._session = session

    def get_base_points(self, fid: int) -> int:
        row = self._session.get(UserRow, fid)
        if row is None:
            raise ParticipantNotFoundError(fid)
        return int(row.points or 0)

    def get_participant(self, fid: int) -> Participant:
        row = self._session.get(UserRow, fid)
        if row is None:
            raise ParticipantNotFoundError(fid)
        return Participant(fid=row.fid, base_points=int(row.points or 0), username=row.username)

    def top_participants(self, limit: int, exclude: Iterable[int] = ()) -> list[Participant]:
        """Top users by points, ties broken by fid ascending."""
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        stmt = select(UserRow)
        excluded = list(exclude)
        if excluded:
            stmt = stmt.where(UserRow.fid.not_in(excluded))
        stmt = stmt.order_by(UserRow.points.desc(), UserRow.fid.asc()).limit(int(limit))
        return [
            Participant(fid=row.fid, base_points=int(row.points or 0), username=row.username)
            for row in self._session.exec(stmt).all()
        ]

    def get_distinct_vote_targets(self, fid: int) -> int:
        return self.bulk_distinct_vote_targets([fid]).get(fid, 0)

    def get_share_count(self, fid: int) -> int:
        return self.bulk_share_counts([fid]).get(fid, 0)

    def bulk_distinct_vote_targets(self, fids: Iterable[int]) -> dict[int, int]:
        """Distinct brands voted per fid across all three podium slots."""
        wanted = list(fids)
        if not wanted:
            return {}
        rows = self._session.exec(
            select(
                UserBrandVoteRow.fid,
                UserBrandVoteRow.brand1_id,
                UserBrandVoteRow.brand2_id,
                UserBrandVoteRow.brand3_id,
            ).where(UserBrandVoteRow.fid.in_(wanted))
        ).all()

        brands: dict[int, set[int]] = defaultdict(set)
        for fid, *slots in rows:
            brands[fid].update(brand for brand in slots if brand is not None)
        return {fid: len(brands.get(fid, ())) for fid in wanted}

    def bulk_share_counts(self, fids: Iterable[int]) -> dict[int, int]:
        """Votes that were shared and have a cast hash, per fid."""
        wanted = list(fids)
        if not wanted:
            return {}
        rows = self._session.exec(
            select(UserBrandVoteRow.fid, func.count(UserBrandVoteRow.id))
            .where(UserBrandVoteRow.fid.in_(wanted), *_SHARED)
            .group_by(UserBrandVoteRow.fid)
        ).all()
        counts = {fid: int(count) for fid, count in rows}
        return {fid: counts.get(fid, 0) for fid in wanted}

    def count_users(self) -> int:
        return int(self._session.exec(select(func.count()).select_from(UserRow)).one())

    def count_votes(self, *, shared_only: bool = False) -> int:
        stmt = select(func.count()).select_from(UserBrandVoteRow)
        if shared_only:
            stmt = stmt.where(*_SHARED)
        return int(self._session.exec(stmt).one())

    def count_users_with_votes(self, *, shared_only: bool = False) -> int:
        stmt = (
            select(func.count(func.distinct(UserBrandVoteRow.fid)))
            .select_from(UserBrandVoteRow)
            .join(UserRow, UserRow.fid == UserBrandVoteRow.fid)
        )
        if shared_only:
            stmt = stmt.where(*_SHARED)
        return int(self._session.exec(stmt).one())

    def total_distinct_vote_targets(self) -> int:
        """Sum over registered users of the distinct brands each voted for."""
        rows = self._session.exec(
            select(
                UserBrandVoteRow.fid,
                UserBrandVoteRow.brand1_id,
                UserBrandVoteRow.brand2_id,
                UserBrandVoteRow.brand3_id,
            ).join(UserRow, UserRow.fid == UserBrandVoteRow.fid)
        ).all()
        brands: dict[int, set[int]] = defaultdict(set)
        for fid, *slots in rows:
            brands[fid].update(brand for brand in slots if brand is not None)
        return sum(len(voted) for voted in brands.values())

    def top_by_points(self, limit: int) -> list[tuple[int, str | None, int]]:
        return [
            (participant.fid, participant.username, participant.base_points)
            for participant in self.top_participants(limit)
        ]

    def top_by_votes(self, limit: int, *, shared_only: bool = False) -> list[tuple[int, str | None, int]]:
        """(fid, username, vote count) of the most active voters, ties by fid ascending."""
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        votes = func.count(UserBrandVoteRow.id)
        stmt = (
            select(UserRow.fid, UserRow.username, votes)
            .join(UserBrandVoteRow, UserBrandVoteRow.fid == UserRow.fid)
            .group_by(UserRow.fid, UserRow.username)
        )
        if shared_only:
            stmt = stmt.where(*_SHARED)
        stmt = stmt.order_by(votes.desc(), UserRow.fid.asc()).limit(int(limit))
        return [(fid, username, int(count)) for fid, username, count in self._session.exec(stmt).all()]
