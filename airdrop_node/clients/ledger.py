from __future__ import annotations

import logging
from typing import Any

from web3 import Web3

logger = logging.getLogger(__name__)

ERC20_BALANCE_ABI: list[dict[str, Any]] = [
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

ERC4626_VAULT_ABI: list[dict[str, Any]] = ERC20_BALANCE_ABI + [
    {
        "inputs": [{"internalType": "uint256", "name": "shares", "type": "uint256"}],
        "name": "convertToAssets",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def build_web3(rpc_url: str, timeout_seconds: float) -> Web3:
    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout_seconds}))


class Web3LedgerReader:
    """Reads wallet and staked token balances in base units.

    ``token_decimals`` tells callers how to convert a summed balance to
    whole tokens.
    """

    def __init__(
        self,
        web3: Web3,
        token_address: str,
        vault_address: str,
        *,
        token_decimals: int = 18,
    ):
        self._web3 = web3
        self._token = web3.eth.contract(address=Web3.to_checksum_address(token_address), abi=ERC20_BALANCE_ABI)
        self._vault = web3.eth.contract(address=Web3.to_checksum_address(vault_address), abi=ERC4626_VAULT_ABI)
        self.token_decimals = int(token_decimals)

    def get_token_balance(self, address: str) -> int:
        raw = self._token.functions.balanceOf(Web3.to_checksum_address(address)).call()
        return int(raw)

    def get_staked_balance(self, address: str) -> int:
        shares = int(self._vault.functions.balanceOf(Web3.to_checksum_address(address)).call())
        if shares == 0:
            return 0
        assets = self._vault.functions.convertToAssets(shares).call()
        return int(assets)
