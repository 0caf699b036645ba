import yaml
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Union
from web3 import Web3
from .netconf import ChainTarget, Network, NetworkID, RPCEndpoints

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    pass


@dataclass
class ContractSpec:
    name: str
    min_balance: int
    address: Optional[str] = None
    only_primary_chain: bool = False


@dataclass
class Settings:
    scrape_interval: int = 30
    port: int = 8000
    health_check_interval: int = 30
    rpc_timeout: int = 30


def parse_min_balance(value: Union[int, str]) -> int:
    """Convert a threshold to wei. Accepts wei integers or "<amount> <unit>" strings."""
    if isinstance(value, bool):
        raise ConfigError(f"Invalid min_balance: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        parts = value.split()
        try:
            if len(parts) == 1:
                return int(parts[0])
            if len(parts) == 2:
                return int(Web3.to_wei(Decimal(parts[0]), parts[1]))
        except (ValueError, ArithmeticError) as e:
            raise ConfigError(f"Invalid min_balance {value!r}: {e}") from e
    raise ConfigError(f"Invalid min_balance: {value!r}")


class Config:
    def __init__(self, config_path: str):
        try:
            with open(config_path, 'r') as f:
                config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read configuration {config_path}: {e}") from e

        try:
            self._load(config)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    def _load(self, config: dict):
        settings = config.get('settings') or {}
        self.settings = Settings(
            scrape_interval=settings.get('scrape_interval', 30),
            port=settings.get('port', 8000),
            health_check_interval=settings.get('health_check_interval', 30),
            rpc_timeout=settings.get('rpc_timeout', 30),
        )

        network_data = config['network']
        network_id = NetworkID(network_data['id'])
        logger.info(f"Loading config for network: {network_id.value}")

        chains = []
        for chain_data in network_data['chains']:
            chain = ChainTarget(
                chain_id=int(chain_data['chain_id']),
                name=chain_data['name'],
                rpc_url=chain_data.get('rpc_url', ''),
                decimals=chain_data.get('decimals', 18),
            )
            logger.info(f"Chain {chain.name} ({chain.chain_id}) RPC URL: {chain.rpc_url}")
            chains.append(chain)

        self.network = Network(id=network_id, chains=chains)
        self.endpoints = RPCEndpoints.from_network(self.network)
        self.create3_factory: Optional[str] = network_data.get('create3_factory')

        self.contracts: List[ContractSpec] = [
            ContractSpec(
                name=contract_data['name'],
                address=contract_data.get('address'),
                only_primary_chain=contract_data.get('only_primary_chain', False),
                min_balance=parse_min_balance(contract_data['min_balance']),
            )
            for contract_data in config.get('contracts') or []
        ]

    @property
    def scrape_interval(self) -> int:
        return self.settings.scrape_interval

    @property
    def port(self) -> int:
        return self.settings.port
