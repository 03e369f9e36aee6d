"""
Coordinator server for fan-out task distribution.

Provides REST API endpoints for:
- Task submission (split, dispatch to workers, merge)
- Health and roster inspection
"""

import argparse
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
import uvicorn

from communication.grpc_client import WorkerGRPCClient
from communication.serialization import TaskPayload, task_from_payload, task_to_payload
from coordinator.config import CoordinatorConfig
from coordinator.service import CoordinatorService
from core.endpoint import Endpoint
from core.errors import DispatchError, InvalidArgumentError, TopologyError


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# Global state
config: Optional[CoordinatorConfig] = None
coordinator: Optional[CoordinatorService] = None
grpc_client: Optional[WorkerGRPCClient] = None


# Lifespan context manager

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan (startup/shutdown)."""
    global config, coordinator, grpc_client

    # Startup
    logger.info("Starting coordinator server...")
    if coordinator is None:
        if config is None:
            config = CoordinatorConfig()
        grpc_client = WorkerGRPCClient(timeout=config.dispatch_timeout)
        coordinator = CoordinatorService(config, grpc_client)

    logger.info(
        f"Coordinator server, {coordinator.config.service_name}, {coordinator.config.host}, "
        f"{coordinator.config.port}, with {len(coordinator.workers)} worker servers, start running."
    )

    yield

    # Shutdown
    logger.info("Shutting down coordinator server...")
    if grpc_client is not None:
        await grpc_client.close()
        grpc_client = None
    logger.info("Coordinator server shutdown complete")


# Create FastAPI app

app = FastAPI(
    title="Fan-out Coordinator",
    description="Splits tasks across workers and merges their results",
    version="0.1.0",
    lifespan=lifespan
)


def get_coordinator() -> CoordinatorService:
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Coordinator not initialized")
    return coordinator


# API Endpoints

@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Fan-out Coordinator",
        "version": "0.1.0",
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    service = get_coordinator()
    return {
        "status": "healthy",
        "service_name": service.config.service_name,
        "workers": len(service.workers)
    }


@app.get("/workers")
async def list_workers():
    """List the worker roster in dispatch order."""
    service = get_coordinator()
    return {
        "workers": [w.to_dict() for w in service.workers],
        "count": len(service.workers)
    }


@app.post("/tasks", response_model=TaskPayload)
async def submit_task(payload: TaskPayload):
    """
    Submit a task and wait for the merged result.

    Returns 400 for an empty or malformed task, 409 if the task cannot be
    split over the roster and 502 if any worker call failed.
    """
    service = get_coordinator()

    try:
        task = task_from_payload(payload)
    except InvalidArgumentError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        merged = await service.submit(task)
    except InvalidArgumentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TopologyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except DispatchError as e:
        logger.error(f"Task '{task.name}' failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return task_to_payload(merged)


# Server entry point

def run_server(coordinator_config: CoordinatorConfig):
    """
    Run the coordinator server.

    Args:
        coordinator_config: Coordinator configuration (roster, address)
    """
    global config
    config = coordinator_config
    logging.getLogger().setLevel(coordinator_config.log_level)
    uvicorn.run(app, host=coordinator_config.host, port=coordinator_config.port, log_level="info")


def parse_args(argv=None) -> CoordinatorConfig:
    """Build a CoordinatorConfig from command line arguments."""
    parser = argparse.ArgumentParser(description="Fan-out coordinator server")
    parser.add_argument("service_name", nargs="?", help="Coordinator service name")
    parser.add_argument("host", nargs="?", help="Host to bind to")
    parser.add_argument("port", nargs="?", type=int, help="HTTP port")
    parser.add_argument(
        "--worker",
        action="append",
        default=None,
        help="Worker endpoint as name@host:port (repeat for each worker, in dispatch order)"
    )
    parser.add_argument("--pool-size", type=int, default=None, help="Worker calls in flight")
    parser.add_argument("--config", type=str, default=None, help="JSON config file")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level")

    args = parser.parse_args(argv)

    if args.config:
        config_dict = CoordinatorConfig.from_json_file(args.config).to_dict()
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
    if args.worker:
        config_dict['workers'] = [Endpoint.parse(w) for w in args.worker]

    return CoordinatorConfig.from_dict(config_dict)


if __name__ == "__main__":
    run_server(parse_args())
