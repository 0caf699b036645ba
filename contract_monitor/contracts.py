import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
from web3 import AsyncWeb3, Web3
from web3.providers import AsyncHTTPProvider
from .config import ContractSpec
from .netconf import NetworkID

logger = logging.getLogger(__name__)

# keccak256 of the CREATE3 proxy init code
CREATE3_PROXY_INITCODE_HASH = bytes.fromhex(
    "21c35dbe1b344a2488cf3321d6ce542f8e9f305544ff09e4993a62319a497c1f"
)

# Staging salts are derived from this block's hash
STAGING_SALT_BLOCK = 1


class RegistryError(Exception):
    pass


@dataclass(frozen=True)
class Thresholds:
    min_balance: int


@dataclass(frozen=True)
class WatchedContract:
    name: str
    address: str
    thresholds: Thresholds
    only_primary_chain: bool = False


@dataclass(frozen=True)
class StagingRPC:
    """Canonical RPC from which staging contract addresses are derived."""
    url: str


def create3_address(factory: str, salt: bytes) -> str:
    """Deterministic CREATE3 address for `salt` deployed through `factory`."""
    factory_bytes = Web3.to_bytes(hexstr=factory)
    proxy = Web3.keccak(b"\xff" + factory_bytes + salt + CREATE3_PROXY_INITCODE_HASH)[12:]
    # RLP([proxy, 1]): the contract is the proxy's first CREATE
    deployed = Web3.keccak(b"\xd6\x94" + proxy + b"\x01")[12:]
    return Web3.to_checksum_address("0x" + bytes(deployed).hex())


def staging_salt(first_block_hash: bytes, name: str) -> bytes:
    return Web3.keccak(text=f"{Web3.to_hex(first_block_hash)}-{name}")


def default_web3_factory(url: str) -> AsyncWeb3:
    return AsyncWeb3(AsyncHTTPProvider(url, request_kwargs={'timeout': 30}))


class ContractRegistry:
    def __init__(
        self,
        specs: List[ContractSpec],
        create3_factory: Optional[str] = None,
        web3_factory: Callable[[str], AsyncWeb3] = default_web3_factory,
    ):
        self.specs = list(specs)
        self.create3_factory = create3_factory
        self.web3_factory = web3_factory
        self._first_block_hashes: Dict[str, bytes] = {}

    async def first_block_hash(self, staging_rpc: StagingRPC) -> bytes:
        if staging_rpc.url not in self._first_block_hashes:
            w3 = self.web3_factory(staging_rpc.url)
            block = await w3.eth.get_block(STAGING_SALT_BLOCK)
            self._first_block_hashes[staging_rpc.url] = bytes(block['hash'])
        return self._first_block_hashes[staging_rpc.url]

    async def to_fund(
        self, network_id: NetworkID, staging_rpc: Optional[StagingRPC] = None
    ) -> List[WatchedContract]:
        """Contracts to watch on `network_id`, with their fund thresholds.

        Staging contracts without an explicit address are resolved through
        CREATE3, salted with the staging RPC's first block hash.
        """
        contracts = []
        for spec in self.specs:
            if spec.address:
                address = Web3.to_checksum_address(spec.address)
            elif network_id == NetworkID.STAGING:
                address = await self._staging_address(spec.name, staging_rpc)
            else:
                raise RegistryError(f"Contract {spec.name} has no address on {network_id.value}")

            contracts.append(WatchedContract(
                name=spec.name,
                address=address,
                thresholds=Thresholds(min_balance=spec.min_balance),
                only_primary_chain=spec.only_primary_chain,
            ))
        return contracts

    async def _staging_address(self, name: str, staging_rpc: Optional[StagingRPC]) -> str:
        if staging_rpc is None:
            raise RegistryError("Staging RPC not set, cannot derive staging addresses")
        if not self.create3_factory:
            raise RegistryError("create3_factory not configured, cannot derive staging addresses")

        try:
            block_hash = await self.first_block_hash(staging_rpc)
        except Exception as e:
            raise RegistryError(f"Failed to fetch staging block {STAGING_SALT_BLOCK}: {e}") from e

        address = create3_address(self.create3_factory, staging_salt(block_hash, name))
        logger.info(f"Derived staging address for {name}: {address}")
        return address
