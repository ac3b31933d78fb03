"""Airdrop worker: periodically rescores the cohort and redistributes the pool."""
from __future__ import annotations

import asyncio
import logging
import os

from sqlmodel import Session

from airdrop_node.clients import AirdropContractReader, NeynarClient, Web3LedgerReader, build_web3
from airdrop_node.config import RuntimeSettings
from airdrop_node.db import (
    DBActivityStore,
    DBAirdropLeafRepository,
    DBAirdropScoreRepository,
    DBAirdropSnapshotRepository,
)
from airdrop_node.merkle import ProofService, SnapshotBuilder
from airdrop_node.multipliers import MultiplierCalculator
from airdrop_node.services import (
    AirdropService,
    AnalyticsService,
    BatchOrchestrator,
    DistributionEngine,
    EligibilityService,
    LeaderboardCache,
    ScoreAggregator,
)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        force=True,
    )


def build_airdrop_service(
    session: Session,
    settings: RuntimeSettings,
    *,
    social=None,
    ledger=None,
    contract: AirdropContractReader | None = None,
) -> AirdropService:
    """Wire repositories, clients and services around one DB session."""
    activity = DBActivityStore(session)
    score_repo = DBAirdropScoreRepository(session)
    snapshot_repo = DBAirdropSnapshotRepository(session)
    leaf_repo = DBAirdropLeafRepository(session)

    if social is None:
        social = NeynarClient(
            api_key=settings.neynar_api_key,
            base_url=settings.neynar_base_url,
            timeout_seconds=settings.neynar_timeout_seconds,
            max_ids_per_call=settings.neynar_max_ids_per_call,
            follow_target_fids=settings.follow_target_fids,
            channel_id=settings.channel_id,
            podium_url_marker=settings.podium_url_marker,
        )
    if ledger is None or (contract is None and settings.airdrop_contract_address):
        web3 = build_web3(settings.rpc_url, settings.rpc_timeout_seconds)
        if ledger is None:
            ledger = Web3LedgerReader(
                web3,
                settings.token_address,
                settings.staking_vault_address,
                token_decimals=settings.ledger_token_decimals,
            )
        if contract is None and settings.airdrop_contract_address:
            contract = AirdropContractReader(web3, settings.airdrop_contract_address)

    leaderboard = LeaderboardCache(score_repo, ttl_seconds=settings.leaderboard_ttl_seconds)
    aggregator = ScoreAggregator(score_repo)
    calculator = MultiplierCalculator(
        activity,
        social,
        ledger,
        timeout_seconds=settings.signal_timeout_seconds,
        profile_token_tag=settings.profile_token_tag,
        max_concurrency=settings.signal_concurrency,
    )

    return AirdropService(
        eligibility=EligibilityService(activity, calculator, aggregator, score_repo, leaderboard),
        orchestrator=BatchOrchestrator(
            activity,
            social,
            calculator,
            aggregator,
            cohort_size=settings.top_participants,
            batch_size=settings.batch_size,
            cooldown_seconds=settings.batch_cooldown_seconds,
            excluded_fids=settings.excluded_fids,
            leaderboard=leaderboard,
        ),
        distribution=DistributionEngine(
            score_repo,
            snapshot_repo,
            total_pool=settings.total_pool,
            token_usd_price=settings.token_usd_price,
            leaderboard=leaderboard,
        ),
        snapshot_builder=SnapshotBuilder(
            score_repo,
            snapshot_repo,
            top_participants=settings.top_participants,
            token_decimals=settings.token_decimals,
        ),
        proofs=ProofService(snapshot_repo, leaf_repo),
        leaderboard=leaderboard,
        snapshot_repository=snapshot_repo,
        analytics=AnalyticsService(
            activity, score_repo, snapshot_repo, token_usd_price=settings.token_usd_price,
        ),
        contract=contract,
    )


class AirdropWorker:
    def __init__(self, service: AirdropService, interval_seconds: int = 6 * 3600):
        self.service = service
        self.interval_seconds = interval_seconds
        self.logger = logging.getLogger(__name__)
        self.stop_event = asyncio.Event()

    async def run(self) -> None:
        self.logger.info("airdrop worker started (interval=%ds)", self.interval_seconds)
        while not self.stop_event.is_set():
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.logger.exception("airdrop cycle error: %s", exc)
            try:
                await asyncio.wait_for(self.stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    async def run_once(self) -> None:
        batch = await self.service.run_batch_calculation()
        self.logger.info(
            "airdrop cycle scored %d/%d participants (%d failed)",
            batch.successful, batch.cohort_size, batch.failed,
        )
        distribution = self.service.recalculate_distribution()
        if distribution.skipped:
            self.logger.info("distribution skipped: %s", distribution.reason)

    async def shutdown(self) -> None:
        self.stop_event.set()


def build_service() -> AirdropWorker:
    from airdrop_node.db.session import create_session

    settings = RuntimeSettings.from_env()
    interval = int(os.getenv("AIRDROP_WORKER_INTERVAL_SECONDS", str(6 * 3600)))
    return AirdropWorker(build_airdrop_service(create_session(), settings), interval_seconds=interval)


async def main() -> None:
    configure_logging()
    logging.getLogger(__name__).info("airdrop worker bootstrap")
    worker = build_service()
    await worker.run()


def entrypoint() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    entrypoint()
