from .hasher import from_hex, hash_pair, leaf_hash, to_hex
from .tree import MerkleNode, build_merkle_tree, compute_root, generate_proof, get_root, verify_proof
from .proof import ProofService
from .snapshot import SnapshotBuilder
