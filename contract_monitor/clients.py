import logging
from typing import Dict
from web3 import AsyncWeb3
from web3.providers import AsyncHTTPProvider
from web3.middleware import ExtraDataToPOAMiddleware
from .netconf import EndpointNotFoundError, Network, RPCEndpoints

logger = logging.getLogger(__name__)


async def setup_web3(chain_name: str, rpc_url: str, timeout: int = 30) -> AsyncWeb3:
    """Setup and test a Web3 connection.

    The client is returned even if the chain is unreachable right now; pollers retry on every tick.
    """
    logger.info(f"Attempting to connect to {chain_name} at {rpc_url}")
    w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url, request_kwargs={'timeout': timeout}))
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

    try:
        block_number = await w3.eth.block_number
        logger.info(f"Successfully connected to {chain_name} (block: {block_number})")
    except Exception as e:
        logger.warning(f"{chain_name} not reachable yet, will keep retrying: {type(e).__name__}: {e}")
    return w3


async def init_web3_connections(
    network: Network, endpoints: RPCEndpoints, timeout: int = 30
) -> Dict[int, AsyncWeb3]:
    """Initialize Web3 connections keyed by chain id; chains without an RPC endpoint are left out"""
    clients: Dict[int, AsyncWeb3] = {}
    for chain in network.evm_chains():
        logger.info(f"Initializing connection for {chain.name}...")
        try:
            rpc_url = endpoints.by_name_or_id(chain.name, chain.chain_id)
        except EndpointNotFoundError as e:
            logger.error(str(e))
            continue

        clients[chain.chain_id] = await setup_web3(chain.name, rpc_url, timeout)
    return clients
