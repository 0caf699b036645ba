import os
import sys
import asyncio
import logging
import signal
from aiohttp import web
from .clients import init_web3_connections
from .config import Config, ConfigError
from .contracts import ContractRegistry
from .monitor import ContractMonitor, MonitoringConfigError

# Configure logging
logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

async def main_async():
    monitor = None
    runner = None
    stopping = asyncio.Event()

    async def shutdown():
        if monitor:
            try:
                await monitor.shutdown()
            except Exception as e:
                logger.error(f"Error during monitor shutdown: {e}")
        if runner:
            try:
                logger.info("Cleaning up runner...")
                await runner.cleanup()
            except Exception as e:
                logger.error(f"Error during runner cleanup: {e}")
        logger.info("Finishing event loop...")

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stopping.set)

    try:
        # Load configuration
        config_path = os.getenv('CONFIG_PATH', 'config.yaml')
        config = Config(config_path)
        logger.info(f"Configuration loaded from {config_path}")

        registry = ContractRegistry(config.contracts, create3_factory=config.create3_factory)
        monitor = ContractMonitor(
            registry,
            scrape_interval=config.settings.scrape_interval,
            health_check_interval=config.settings.health_check_interval,
        )

        # Create and start web server
        app = monitor.create_web_app()
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, '0.0.0.0', config.port)
        await site.start()

        logger.info(f"Server started on port {config.port}")

        # Initialize Web3 connections and start monitoring
        rpc_clients = await init_web3_connections(
            config.network, config.endpoints, config.settings.rpc_timeout
        )
        await monitor.start_monitoring(config.network, config.endpoints, rpc_clients)

    except (ConfigError, MonitoringConfigError) as e:
        logger.error(f"Fatal configuration error: {e}")
        await shutdown()
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        await shutdown()
        sys.exit(1)

    await stopping.wait()
    logger.info("Received shutdown signal")
    await shutdown()

def main():
    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    except Exception as e:
        logger.error(f"Fatal error in main: {e}")
        sys.exit(1)
    finally:
        logger.info("Program terminated")

if __name__ == "__main__":
    main()
