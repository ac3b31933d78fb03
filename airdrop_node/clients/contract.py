from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from web3 import Web3

logger = logging.getLogger(__name__)

ZERO_ROOT = "0x" + "00" * 32

AIRDROP_CONTRACT_ABI: list[dict[str, Any]] = [
    {
        "inputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "name": "fidClaimed",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "getStatus",
        "outputs": [
            {"internalType": "bytes32", "name": "root", "type": "bytes32"},
            {"internalType": "bool", "name": "enabled", "type": "bool"},
            {"internalType": "uint256", "name": "totalClaimedAmount", "type": "uint256"},
            {"internalType": "uint256", "name": "escrowBalance", "type": "uint256"},
            {"internalType": "uint256", "name": "allowance", "type": "uint256"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]


@dataclass(frozen=True)
class OnChainStatus:
    merkle_root: str
    claiming_enabled: bool
    total_claimed: int
    escrow_balance: int
    allowance: int

    @property
    def root_is_set(self) -> bool:
        return self.merkle_root != ZERO_ROOT


class AirdropContractReader:
    """Read-only view of the verifying airdrop contract."""

    def __init__(self, web3: Web3, contract_address: str):
        if not contract_address:
            raise ValueError("AIRDROP_CONTRACT_ADDRESS not configured")
        self._contract = web3.eth.contract(
            address=Web3.to_checksum_address(contract_address), abi=AIRDROP_CONTRACT_ABI,
        )

    def get_status(self) -> OnChainStatus:
        root, enabled, total_claimed, escrow, allowance = self._contract.functions.getStatus().call()
        root_hex = "0x" + bytes(root).hex() if isinstance(root, (bytes, bytearray)) else str(root)
        status = OnChainStatus(
            merkle_root=root_hex.lower(),
            claiming_enabled=bool(enabled),
            total_claimed=int(total_claimed),
            escrow_balance=int(escrow),
            allowance=int(allowance),
        )
        logger.info("Airdrop contract status root=%s enabled=%s", status.merkle_root, status.claiming_enabled)
        return status

    def has_claimed(self, fid: int) -> bool:
        return bool(self._contract.functions.fidClaimed(int(fid)).call())
