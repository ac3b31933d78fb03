"""Exception hierarchy for the airdrop node."""
from __future__ import annotations


class AirdropError(Exception):
    """Base class for every error raised by the airdrop node."""


class ParticipantNotFoundError(AirdropError):
    def __init__(self, fid: int):
        super().__init__(f"Participant {fid} not found")
        self.fid = fid


class SnapshotNotFoundError(AirdropError):
    def __init__(self, snapshot_id: int | None = None):
        if snapshot_id is None:
            message = "No frozen airdrop snapshot found"
        else:
            message = f"Airdrop snapshot {snapshot_id} not found or not frozen"
        super().__init__(message)
        self.snapshot_id = snapshot_id


class SnapshotFrozenError(AirdropError):
    """Raised on any attempt to write leaves under a frozen snapshot."""

    def __init__(self, snapshot_id: int):
        super().__init__(f"Airdrop snapshot {snapshot_id} is frozen; its leaves are immutable")
        self.snapshot_id = snapshot_id


class EmptyCohortError(AirdropError):
    """No scored participants are available to snapshot."""


class MerkleIntegrityError(AirdropError):
    """Stored leaves no longer reproduce the committed Merkle root.

    Never recovered locally: it means persisted data diverged from what
    was committed on-chain.
    """


class SignalError(AirdropError):
    """An upstream signal source returned an unusable payload."""


class ContractNotConfiguredError(AirdropError):
    def __init__(self):
        super().__init__("AIRDROP_CONTRACT_ADDRESS not configured")
