import logging
import asyncio
import time
from aiohttp import web
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from web3 import AsyncWeb3
from typing import Dict, List, Optional
from .contracts import ContractRegistry, StagingRPC, WatchedContract
from .netconf import ChainTarget, EndpointNotFoundError, Network, NetworkID, RPCEndpoints
from .metrics import (
    health_gauge, last_successful_scrape, rpc_health,
    contract_balance, contract_balance_low, contract_failures_total
)

logger = logging.getLogger(__name__)


class MonitoringConfigError(Exception):
    pass


class ContractLogAdapter(logging.LoggerAdapter):
    """Appends the task's contextual fields to every log line."""

    def process(self, msg, kwargs):
        fields = " ".join(f"{key}={value}" for key, value in self.extra.items())
        return f"{msg} [{fields}]", kwargs


def balance_to_display(balance: int, decimals: int = 18) -> float:
    return balance / (10 ** decimals)


def is_low_balance(balance: int, min_balance: int) -> bool:
    # At-threshold counts as low
    return balance <= min_balance


class ContractMonitor:
    def __init__(self, registry: ContractRegistry, scrape_interval: float = 30, health_check_interval: float = 30):
        self.registry = registry
        self.scrape_interval = scrape_interval
        self.health_check_interval = health_check_interval
        self.rpc_clients: Dict[int, AsyncWeb3] = {}
        self.staging_rpc: Optional[StagingRPC] = None
        self.stop_event = asyncio.Event()
        self.tasks: List[asyncio.Task] = []
        self.health_tasks: List[asyncio.Task] = []
        self.last_successful_scrape_time = 0.0

    def create_web_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self.health_check_handler)
        app.router.add_get("/metrics", self.metrics_handler)
        return app

    async def metrics_handler(self, request):
        metrics_data = generate_latest()
        return web.Response(
            body=metrics_data,
            headers={'Content-Type': CONTENT_TYPE_LATEST}
        )

    async def health_check_handler(self, request):
        # Check if we have at least one RPC client
        has_working_rpc = len(self.rpc_clients) > 0

        # Check if we had a successful scrape in the last 2 intervals
        last_scrape_ok = time.time() - self.last_successful_scrape_time < (self.scrape_interval * 2)

        is_healthy = has_working_rpc and last_scrape_ok
        health_gauge.set(1 if is_healthy else 0)

        if is_healthy:
            return web.Response(text="healthy", status=200)
        else:
            return web.Response(text="unhealthy", status=500)

    def use_staging_rpc(self, network: Network, endpoints: RPCEndpoints) -> StagingRPC:
        """Fix the RPC that staging addresses are derived from. Set at most once."""
        if self.staging_rpc is not None:
            return self.staging_rpc

        chain = network.chain(NetworkID.STAGING.primary_chain_id)
        if chain is None:
            raise MonitoringConfigError("Network missing staging execution chain")

        try:
            url = endpoints.by_name_or_id(chain.name, chain.chain_id)
        except EndpointNotFoundError as e:
            raise MonitoringConfigError(f"Cannot resolve staging RPC: {e}") from e

        self.staging_rpc = StagingRPC(url=url)
        return self.staging_rpc

    async def start_monitoring(
        self, network: Network, endpoints: RPCEndpoints, rpc_clients: Dict[int, AsyncWeb3]
    ) -> List[asyncio.Task]:
        """Spawn one poller per (contract, chain) pairing and return without waiting on them.

        Raises MonitoringConfigError when the staging RPC cannot be resolved.
        A registry failure disables monitoring for the run and is not raised.
        """
        logger.info("Monitoring contracts")
        self.rpc_clients = rpc_clients

        if network.id == NetworkID.STAGING:
            self.use_staging_rpc(network, endpoints)

        try:
            to_fund = await self.registry.to_fund(network.id, self.staging_rpc)
        except Exception as e:
            logger.error(f"Failed to get contract addresses to monitor - skipping monitoring: {e}")
            return []

        tasks = []
        for chain in network.evm_chains():
            client = rpc_clients.get(chain.chain_id)
            if client is None:
                logger.warning(f"No RPC client for {chain.name}, skipping...")
                continue

            is_primary = network.is_primary(chain)
            for contract in to_fund:
                if contract.only_primary_chain and not is_primary:
                    continue

                tasks.append(asyncio.create_task(
                    self.monitor_contract_forever(contract, chain, client),
                    name=f"monitor-{chain.name}-{contract.name}",
                ))

            self.health_tasks.append(asyncio.create_task(
                self.monitor_rpc_forever(chain, client),
                name=f"rpc-health-{chain.name}",
            ))

        self.tasks.extend(tasks)
        logger.info(f"Started {len(tasks)} contract monitors")
        return tasks

    async def wait_stopped(self, timeout: float) -> bool:
        """Wait up to `timeout` seconds; True if monitoring was stopped meanwhile."""
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def monitor_contract_forever(self, contract: WatchedContract, chain: ChainTarget, client: AsyncWeb3):
        log = ContractLogAdapter(logger, {
            "chain": chain.name,
            "name": contract.name,
            "address": contract.address,
        })
        log.info("Monitoring account")

        while not await self.wait_stopped(self.scrape_interval):
            try:
                await self.monitor_contract_once(contract, chain, client)
            except Exception as e:
                if self.stop_event.is_set():
                    return
                log.warning(f"Monitoring contract failed (will retry): {type(e).__name__}: {e}")
                contract_failures_total.labels(chain=chain.name).inc()

    async def monitor_contract_once(self, contract: WatchedContract, chain: ChainTarget, client: AsyncWeb3):
        balance = await client.eth.get_balance(contract.address, "latest")
        if self.stop_event.is_set():
            return

        contract_balance.labels(chain=chain.name, name=contract.name).set(
            balance_to_display(balance, chain.decimals)
        )

        is_low = is_low_balance(balance, contract.thresholds.min_balance)
        contract_balance_low.labels(chain=chain.name, name=contract.name).set(1.0 if is_low else 0.0)

        self.last_successful_scrape_time = time.time()
        last_successful_scrape.set(self.last_successful_scrape_time)

    async def check_rpc_health(self, chain_name: str, client: AsyncWeb3) -> bool:
        try:
            await client.eth.block_number
            rpc_health.labels(chain=chain_name).set(1)
            return True
        except Exception as e:
            logger.error(f"Health check failed for {chain_name}: {e}")

        rpc_health.labels(chain=chain_name).set(0)
        return False

    async def monitor_rpc_forever(self, chain: ChainTarget, client: AsyncWeb3):
        while not await self.wait_stopped(self.health_check_interval):
            await self.check_rpc_health(chain.name, client)

    async def shutdown(self):
        """Graceful shutdown"""
        logger.info("Shutting down contract monitor...")
        self.stop_event.set()
        pending = self.tasks + self.health_tasks
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Contract monitoring stopped")
