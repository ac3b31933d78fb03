"""Sorted-pair binary Merkle tree construction and proof generation."""
from __future__ import annotations

from dataclasses import dataclass

from airdrop_node.merkle.hasher import hash_pair


@dataclass
class MerkleNode:
    """In-memory node used during tree construction."""
    hash: bytes
    level: int
    position: int
    left: "MerkleNode | None" = None
    right: "MerkleNode | None" = None
    fid: int | None = None


def build_merkle_tree(leaves: list[MerkleNode]) -> list[MerkleNode]:
    """Build a sorted-pair Merkle tree from ordered leaf nodes.

    Returns a flat list of all nodes (leaves + intermediates + root).

    If there are no leaves, returns an empty list.
    If a level has an odd number of nodes, the last node is promoted to the
    next level unchanged (no self-pairing), matching merkletreejs with
    ``sortPairs`` and OpenZeppelin's MerkleProof.
    """
    if not leaves:
        return []

    if len(leaves) == 1:
        return list(leaves)

    all_nodes: list[MerkleNode] = list(leaves)
    current_level = list(leaves)

    level = 1
    while len(current_level) > 1:
        next_level: list[MerkleNode] = []
        for i in range(0, len(current_level) - 1, 2):
            left = current_level[i]
            right = current_level[i + 1]
            parent = MerkleNode(
                hash=hash_pair(left.hash, right.hash),
                level=level,
                position=i // 2,
                left=left,
                right=right,
            )
            next_level.append(parent)
            all_nodes.append(parent)

        if len(current_level) % 2 == 1:
            next_level.append(current_level[-1])

        current_level = next_level
        level += 1

    return all_nodes


def get_root(nodes: list[MerkleNode]) -> MerkleNode | None:
    """Get the root node (highest level) from a flat node list."""
    if not nodes:
        return None
    return max(nodes, key=lambda n: n.level)


def generate_proof(nodes: list[MerkleNode], leaf_hash: bytes) -> list[bytes] | None:
    """Generate an inclusion proof for a leaf hash.

    Returns the sibling hashes from leaf to root, or None when the leaf is
    not part of the tree. Sibling order needs no left/right marker because
    every pair is hashed sorted.
    """
    leaf = None
    for node in nodes:
        if node.level == 0 and node.hash == leaf_hash:
            leaf = node
            break

    if leaf is None:
        return None

    parent_map: dict[int, MerkleNode] = {}
    for node in nodes:
        if node.left is not None:
            parent_map[id(node.left)] = node
        if node.right is not None:
            parent_map[id(node.right)] = node

    # Promoted nodes skip levels, so walking parents never yields a missing sibling
    path: list[bytes] = []
    current = leaf
    while id(current) in parent_map:
        parent = parent_map[id(current)]
        sibling = parent.right if parent.left is current else parent.left
        path.append(sibling.hash)
        current = parent

    return path


def verify_proof(leaf_hash: bytes, proof: list[bytes], expected_root: bytes) -> bool:
    """Verify a sorted-pair Merkle inclusion proof."""
    current = leaf_hash
    for sibling in proof:
        current = hash_pair(current, sibling)
    return current == expected_root


def compute_root(leaf_hashes: list[bytes]) -> bytes | None:
    """Root over already-ordered leaf hashes; None for an empty list."""
    leaves = [MerkleNode(hash=h, level=0, position=i) for i, h in enumerate(leaf_hashes)]
    root = get_root(build_merkle_tree(leaves))
    return root.hash if root else None
