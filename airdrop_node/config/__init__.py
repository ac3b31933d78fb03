from airdrop_node.config.runtime import RuntimeSettings

__all__ = ["RuntimeSettings"]
