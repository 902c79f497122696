"""Networks, tokens and defaults served by the multisig wallet."""

from __future__ import annotations

from typing import Dict, List, Optional, TypedDict

from .errors import UnsupportedNetworkError, UnsupportedTokenError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
SOLANA_CHAIN_ID = "solana"

PAYMENT_HEADER = "x-payment"
USER_AGENT = "X402MultiSig-SDK/1.0"
X402_VERSION = 1

SUPPORTED_NETWORKS: List[str] = ["base", "base-sepolia", "solana"]

NETWORK_CHAIN_IDS: Dict[str, str] = {
    "base": "0x2105",
    "base-sepolia": "0x14a34",
    "solana": SOLANA_CHAIN_ID,
}

CHAIN_ID_TO_NETWORK: Dict[str, str] = {
    chain_id: network for network, chain_id in NETWORK_CHAIN_IDS.items()
}


class TokenConfig(TypedDict):
    name: str
    symbol: str
    address: str
    decimals: int


SUPPORTED_TOKENS: Dict[str, List[TokenConfig]] = {
    "base": [
        {"name": "Ether", "symbol": "ETH", "address": ZERO_ADDRESS, "decimals": 18},
        {
            "name": "USD Coin",
            "symbol": "USDC",
            "address": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
            "decimals": 6,
        },
    ],
    "base-sepolia": [
        {"name": "Ether", "symbol": "ETH", "address": ZERO_ADDRESS, "decimals": 18},
        {
            "name": "USD Coin",
            "symbol": "USDC",
            "address": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
            "decimals": 6,
        },
    ],
    "solana": [
        {
            "name": "USD Coin",
            "symbol": "USDC",
            "address": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
            "decimals": 6,
        },
        {"name": "SOL", "symbol": "SOL", "address": ZERO_ADDRESS, "decimals": 9},
    ],
}


class DomainParams(TypedDict):
    verifying_contract: str
    domain_chain_id: str
    domain_name: str
    domain_version: str


DEFAULT_REGISTER_CANISTER_ID = "jsinc-qqaaa-aaaab-ab55q-cai"
DEFAULT_IDENTITY_NAME = "default"
DEFAULT_IDENTITY_DIR = ".multisig-x402/identities"
DEFAULT_NETWORK = "mainnet"
DEFAULT_DISPLAY_NAME = "x402MultiSig"
DEFAULT_HOSTS: Dict[str, str] = {
    "local": "http://127.0.0.1:4943",
    "mainnet": "https://ic0.app",
}

DEFAULT_POLL_MAX_ATTEMPTS = 120
DEFAULT_POLL_INTERVAL = 3.0


def network_for_chain_id(domain_chain_id: str) -> str:
    try:
        return CHAIN_ID_TO_NETWORK[domain_chain_id]
    except KeyError as exc:
        supported = ", ".join(CHAIN_ID_TO_NETWORK)
        raise UnsupportedNetworkError(
            "domainChainId",
            domain_chain_id,
            f"Unsupported network chain id {domain_chain_id}; supported chain ids: {supported}",
        ) from exc


def chain_id_for_network(network: str) -> str:
    try:
        return NETWORK_CHAIN_IDS[network]
    except KeyError as exc:
        raise UnsupportedNetworkError(
            "network",
            network,
            f"Unsupported network {network}; supported networks: {', '.join(SUPPORTED_NETWORKS)}",
        ) from exc


def get_token_config(network: str, contract_address: str) -> Optional[TokenConfig]:
    wanted = contract_address.lower()
    for token in SUPPORTED_TOKENS.get(network, []):
        if token["address"].lower() == wanted:
            return token
    return None


def is_supported_token(network: str, contract_address: str) -> bool:
    return get_token_config(network, contract_address) is not None


def get_token_config_by_symbol(network: str, symbol: str) -> Optional[TokenConfig]:
    for token in SUPPORTED_TOKENS.get(network, []):
        if token["symbol"] == symbol:
            return token
    return None


def describe_supported_tokens(network: str) -> str:
    tokens = SUPPORTED_TOKENS.get(network) or []
    if not tokens:
        return "(no supported tokens on this network yet)"
    return ", ".join(f"{t['symbol']} ({t['name']}): {t['address']}" for t in tokens)


def get_eip712_domain_params(network: str, symbol: str, domain_version: str) -> DomainParams:
    """Resolve the EIP-712 domain for ``symbol`` on ``network``.

    The token symbol doubles as the domain name.
    """
    domain_chain_id = chain_id_for_network(network)
    token = get_token_config_by_symbol(network, symbol)
    if token is None:
        supported = ", ".join(t["symbol"] for t in SUPPORTED_TOKENS.get(network, [])) or "none"
        raise UnsupportedTokenError(
            "token",
            symbol,
            f"Network {network} does not support token {symbol}; supported tokens: {supported}",
        )
    return {
        "verifying_contract": token["address"],
        "domain_chain_id": domain_chain_id,
        "domain_name": token["symbol"],
        "domain_version": domain_version,
    }
