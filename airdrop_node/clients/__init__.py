from airdrop_node.clients.contract import AirdropContractReader, OnChainStatus
from airdrop_node.clients.ledger import Web3LedgerReader, build_web3
from airdrop_node.clients.neynar import NeynarClient, parse_profile
