from typing import Dict, NamedTuple, Optional


class ChainInfo(NamedTuple):
    name: str
    full_name: str
    is_testnet: bool
    explorer_url: str


CHAIN_INFO: Dict[int, ChainInfo] = {
    1: ChainInfo("Ethereum", "Ethereum Mainnet", False, "https://etherscan.io"),
    5: ChainInfo("Goerli", "Ethereum Goerli", True, "https://goerli.etherscan.io"),
    11155111: ChainInfo("Sepolia", "Ethereum Sepolia", True, "https://sepolia.etherscan.io"),
    137: ChainInfo("Polygon", "Polygon Mainnet", False, "https://polygonscan.com"),
    80002: ChainInfo("Polygon Amoy", "Polygon Amoy Testnet", True, "https://amoy.polygonscan.com"),
    42161: ChainInfo("Arbitrum", "Arbitrum One", False, "https://arbiscan.io"),
    421614: ChainInfo("Arbitrum Sepolia", "Arbitrum Sepolia", True, "https://sepolia.arbiscan.io"),
    8453: ChainInfo("Base", "Base Mainnet", False, "https://basescan.org"),
    84532: ChainInfo("Base Sepolia", "Base Sepolia", True, "https://sepolia.basescan.org"),
    10: ChainInfo("Optimism", "Optimism Mainnet", False, "https://optimistic.etherscan.io"),
    11155420: ChainInfo("Optimism Sepolia", "Optimism Sepolia", True, "https://sepolia-optimism.etherscan.io"),
    56: ChainInfo("BSC", "BNB Smart Chain", False, "https://bscscan.com"),
    97: ChainInfo("BSC Testnet", "BNB Smart Chain Testnet", True, "https://testnet.bscscan.com"),
    1399811149: ChainInfo("Solana", "Solana Mainnet", False, "https://solscan.io"),
    1399811150: ChainInfo("Solana Testnet", "Solana Devnet", True, "https://solscan.io/?cluster=devnet"),
    23434: ChainInfo("Avalanche", "Avalanche C-Chain", False, "https://snowtrace.io"),
    39361: ChainInfo("Avalanche Fuji", "Avalanche Fuji Testnet", True, "https://testnet.snowtrace.io"),
}

EVM_CHAIN_IDS = frozenset([1, 5, 11155111, 137, 80002, 42161, 421614, 8453, 84532, 10, 11155420, 56, 97])
SOLANA_CHAIN_IDS = frozenset([1399811149, 1399811150])

NETWORK_ALIASES = {
    "eth": 1,
    "ethereum": 1,
    "goerli": 5,
    "sepolia": 11155111,
    "polygon": 137,
    "matic": 137,
    "amoy": 80002,
    "arbitrum": 42161,
    "arb": 42161,
    "base": 8453,
    "optimism": 10,
    "op": 10,
    "bsc": 56,
    "bnb": 56,
    "binance": 56,
    "solana": 1399811149,
    "sol": 1399811149,
    "avalanche": 23434,
    "avax": 23434,
    "fuji": 39361,
}


def _to_chain_id(chain_id) -> Optional[int]:
    try:
        return int(chain_id)
    except (TypeError, ValueError):
        return None


def get_chain_info(chain_id) -> Optional[ChainInfo]:
    return CHAIN_INFO.get(_to_chain_id(chain_id))


def get_network_name(chain_id) -> str:
    """Short network name for a chain id, or the id itself when unknown"""
    info = get_chain_info(chain_id)
    if info is None:
        return f"Chain {chain_id}"
    return info.name


def get_chain_id(network: str) -> Optional[int]:
    """Resolve a network name, alias or numeric id to a chain id"""
    if network is None:
        return None
    value = str(network).strip().lower()
    if not value:
        return None

    if value.isdigit():
        return int(value)
    if value in NETWORK_ALIASES:
        return NETWORK_ALIASES[value]

    for chain_id, info in CHAIN_INFO.items():
        if info.name.lower() == value or info.full_name.lower() == value:
            return chain_id
    return None


def format_network_name(chain_id) -> str:
    info = get_chain_info(chain_id)
    if info is None:
        return get_network_name(chain_id)
    if info.is_testnet and "testnet" not in info.name.lower():
        return f"{info.name} (Testnet)"
    return info.name


def is_evm_chain(chain_id) -> bool:
    return _to_chain_id(chain_id) in EVM_CHAIN_IDS


def is_solana_chain(chain_id) -> bool:
    return _to_chain_id(chain_id) in SOLANA_CHAIN_IDS


def get_explorer_tx_url(chain_id, tx_hash: str) -> Optional[str]:
    info = get_chain_info(chain_id)
    if info is None or not tx_hash:
        return None
    if is_solana_chain(chain_id) and "?" in info.explorer_url:
        base, query = info.explorer_url.split("?", 1)
        return f"{base.rstrip('/')}/tx/{tx_hash}?{query}"
    return f"{info.explorer_url}/tx/{tx_hash}"


def get_explorer_address_url(chain_id, address: str) -> Optional[str]:
    info = get_chain_info(chain_id)
    if info is None or not address:
        return None
    path = "account" if is_solana_chain(chain_id) else "address"
    if "?" in info.explorer_url:
        base, query = info.explorer_url.split("?", 1)
        return f"{base.rstrip('/')}/{path}/{address}?{query}"
    return f"{info.explorer_url}/{path}/{address}"
