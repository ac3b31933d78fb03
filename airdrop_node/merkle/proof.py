from __future__ import annotations

import logging

from airdrop_node.db.repositories import DBAirdropLeafRepository, DBAirdropSnapshotRepository
from airdrop_node.errors import MerkleIntegrityError, SnapshotNotFoundError
from airdrop_node.merkle.hasher import leaf_hash, to_hex
from airdrop_node.merkle.tree import MerkleNode, build_merkle_tree, generate_proof, get_root, verify_proof
from airdrop_node.schemas import ProofResult

logger = logging.getLogger(__name__)


class ProofService:
    """Reproduces inclusion proofs from the persisted leaves of a frozen snapshot.

    The tree is rebuilt from scratch on every request and checked against
    the committed root before any proof is handed out.
    """

    def __init__(
        self,
        snapshot_repository: DBAirdropSnapshotRepository,
        leaf_repository: DBAirdropLeafRepository,
    ):
        self.snapshot_repo = snapshot_repository
        self.leaf_repo = leaf_repository

    def generate_proof(self, fid: int, snapshot_id: int | None = None) -> ProofResult | None:
        if snapshot_id is None:
            snapshot = self.snapshot_repo.get_active()
        else:
            snapshot = self.snapshot_repo.get(snapshot_id)
        if snapshot is None or not snapshot.is_frozen or not snapshot.merkle_root:
            raise SnapshotNotFoundError(snapshot_id)

        leaves = self.leaf_repo.load_leaves_for_snapshot(snapshot.id)
        nodes: list[MerkleNode] = []
        target: MerkleNode | None = None
        target_amount = 0
        for position, leaf in enumerate(leaves):
            recomputed = leaf_hash(leaf.fid, leaf.base_amount)
            if to_hex(recomputed) != leaf.leaf_hash.lower():
                raise MerkleIntegrityError(
                    f"Stored leaf hash for fid {leaf.fid} does not match (fid, base_amount) "
                    f"in snapshot {snapshot.id}"
                )
            node = MerkleNode(hash=recomputed, level=0, position=position, fid=leaf.fid)
            nodes.append(node)
            if leaf.fid == fid:
                target = node
                target_amount = leaf.base_amount

        tree = build_merkle_tree(nodes)
        root = get_root(tree)
        expected_root = snapshot.merkle_root.lower()
        if root is None or to_hex(root.hash) != expected_root:
            raise MerkleIntegrityError(
                f"Rebuilt root {to_hex(root.hash) if root else None} does not match "
                f"committed root {expected_root} of snapshot {snapshot.id}"
            )

        if target is None:
            logger.info("fid=%s is not part of snapshot %s", fid, snapshot.id)
            return None

        proof = generate_proof(tree, target.hash)
        if proof is None or not verify_proof(target.hash, proof, root.hash):
            raise MerkleIntegrityError(f"Proof for fid {fid} does not verify against snapshot {snapshot.id}")

        return ProofResult(
            fid=fid,
            amount=target_amount,
            proof=[to_hex(step) for step in proof],
            merkle_root=expected_root,
            snapshot_id=snapshot.id,
        )
