from airdrop_node.services.aggregator import ScoreAggregator, final_score, total_multiplier
from airdrop_node.services.airdrop import AirdropService
from airdrop_node.services.analytics import AnalyticsService
from airdrop_node.services.batch import BatchOrchestrator
from airdrop_node.services.distribution import TOTAL_POOL, DistributionEngine, allocate
from airdrop_node.services.eligibility import EligibilityService
from airdrop_node.services.leaderboard import LeaderboardCache
