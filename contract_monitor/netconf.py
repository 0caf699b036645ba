import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class EndpointNotFoundError(Exception):
    pass


class NetworkID(str, Enum):
    DEVNET = "devnet"
    STAGING = "staging"
    OMEGA = "omega"
    MAINNET = "mainnet"

    @property
    def primary_chain_id(self) -> int:
        return PRIMARY_EXECUTION_CHAIN_IDS[self]


# Execution-layer chain of each network
PRIMARY_EXECUTION_CHAIN_IDS = {
    NetworkID.DEVNET: 1651,
    NetworkID.STAGING: 1654,
    NetworkID.OMEGA: 164,
    NetworkID.MAINNET: 166,
}


@dataclass(frozen=True)
class ChainTarget:
    chain_id: int
    name: str
    rpc_url: str = ""
    decimals: int = 18


@dataclass
class Network:
    id: NetworkID
    chains: List[ChainTarget] = field(default_factory=list)

    def chain(self, chain_id: int) -> Optional[ChainTarget]:
        for chain in self.chains:
            if chain.chain_id == chain_id:
                return chain
        return None

    def evm_chains(self) -> List[ChainTarget]:
        return list(self.chains)

    def is_primary(self, chain: ChainTarget) -> bool:
        return chain.chain_id == self.id.primary_chain_id

    def primary_chain(self) -> Optional[ChainTarget]:
        return self.chain(self.id.primary_chain_id)


class RPCEndpoints:
    """RPC URLs keyed by chain name (or the string form of the chain id)."""

    def __init__(self, endpoints: Optional[Dict[str, str]] = None):
        self.endpoints: Dict[str, str] = dict(endpoints or {})

    @classmethod
    def from_network(cls, network: Network) -> "RPCEndpoints":
        return cls({chain.name: chain.rpc_url for chain in network.chains if chain.rpc_url})

    def by_name_or_id(self, name: str, chain_id: int) -> str:
        url = self.endpoints.get(name) or self.endpoints.get(str(chain_id))
        if not url:
            raise EndpointNotFoundError(f"No RPC endpoint for chain {name} ({chain_id})")
        return url

    def __len__(self):
        return len(self.endpoints)
