from airdrop_node.multipliers.calculator import BatchContext, DimensionResult, MultiplierCalculator, MultiplierSet
from airdrop_node.multipliers.dimensions import TIER_TABLES
from airdrop_node.multipliers.tiers import Tier, TierTable
