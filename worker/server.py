"""
Worker process entry point.

Starts a WorkerService behind a gRPC server and keeps it running until
interrupted.

Usage:
    python -m worker.server Slave1 127.0.0.1 19092
    python -m worker.server --config worker.json
"""

import argparse
import asyncio
import logging
import signal
from typing import Optional

from communication.grpc_server import WorkerGRPCServer
from worker.config import WorkerConfig, DEFAULT_POOL_SIZE
from worker.service import WorkerService, RequestHandler


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class WorkerServer:
    """
    Worker process: a WorkerService exposed over gRPC.

    Manages the lifecycle of the service, its server and graceful shutdown.
    """

    def __init__(self, config: WorkerConfig, handler: Optional[RequestHandler] = None):
        """
        Args:
            config: Worker configuration
            handler: Per-request computation (placeholder if omitted)
        """
        self.config = config

        # Set logging level
        logging.getLogger().setLevel(config.log_level)

        self.service = WorkerService(config, handler=handler)
        self.grpc_server = WorkerGRPCServer(
            service_name=config.service_name,
            worker=self.service,
            host=config.host,
            port=config.port,
        )
        self._shutdown_event = asyncio.Event()

    async def start(self):
        """Start serving sub-tasks."""
        await self.grpc_server.start()
        logger.info(
            f"Worker server, {self.config.service_name}, {self.config.host}, "
            f"{self.grpc_server.port}, start running."
        )

    async def stop(self):
        """Stop the server and release the request pool."""
        await self.grpc_server.stop()
        self.service.close()
        self._shutdown_event.set()

    async def wait_for_shutdown(self):
        """Block until stop() is called."""
        await self._shutdown_event.wait()


async def main(config: WorkerConfig):
    """
    Run a worker until SIGINT/SIGTERM.

    Args:
        config: Worker configuration
    """
    server = WorkerServer(config)
    await server.start()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, lambda: asyncio.ensure_future(server.stop()))

    await server.wait_for_shutdown()
    logger.info("Worker shutdown complete")


def parse_args(argv=None) -> WorkerConfig:
    """Build a WorkerConfig from command line arguments."""
    parser = argparse.ArgumentParser(description="Fan-out worker server")
    parser.add_argument("service_name", nargs="?", help="Name the worker is registered under")
    parser.add_argument("host", nargs="?", help="Host to bind to")
    parser.add_argument("port", nargs="?", type=int, help="gRPC port")
    parser.add_argument(
        "--pool-size",
        type=int,
        default=None,
        help=f"Requests executed concurrently (default: {DEFAULT_POOL_SIZE})"
    )
    parser.add_argument("--config", type=str, default=None, help="JSON config file")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level")

    args = parser.parse_args(argv)

    if args.config:
        config_dict = WorkerConfig.from_json_file(args.config).to_dict()
    elif args.service_name and args.host and args.port:
        config_dict = {}
    else:
        parser.error("either <service_name> <host> <port> or --config is required")

    overrides = {
        'service_name': args.service_name,
        'host': args.host,
        'port': args.port,
        'pool_size': args.pool_size,
        'log_level': args.log_level,
    }
    config_dict.update({k: v for k, v in overrides.items() if v is not None})

    return WorkerConfig.from_dict(config_dict)


if __name__ == "__main__":
    asyncio.run(main(parse_args()))
