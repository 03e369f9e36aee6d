"""
Local launcher for a coordinator and its workers.

Starts N worker servers and one coordinator configured with exactly those
workers, prefixing each process's output with its service name.
Optionally submits a synthetic task once everything is up.

Usage:
    # Coordinator + 2 workers
    python scripts/start_services.py

    # Three workers, submit a 100-request task after startup
    python scripts/start_services.py --workers 3 --submit 100

    # Also write to log files
    python scripts/start_services.py --logs-dir logs
"""

import asyncio
import argparse
import signal
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional


class Colors:
    BLUE = '\033[94m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    MAGENTA = '\033[95m'
    CYAN = '\033[96m'
    RED = '\033[91m'
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'


WORKER_COLORS = [Colors.GREEN, Colors.YELLOW, Colors.CYAN, Colors.MAGENTA]


class ServiceManager:
    """Runs service processes and merges their output into one console."""

    def __init__(self, logs_dir: Optional[Path] = None):
        self.processes: Dict[str, asyncio.subprocess.Process] = {}
        self.streams: Dict[str, asyncio.Task] = {}
        self.logs_dir = logs_dir
        self.shutdown_event = asyncio.Event()

        if self.logs_dir:
            self.logs_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _prefix(service: str, color: str) -> str:
        ts = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        return f"{Colors.DIM}{ts}{Colors.RESET} {color}{service:12}{Colors.RESET} │ "

    async def _pump(self, service: str, stream, color: str, log_file=None):
        """Copy a process's output to the console (and log file)."""
        while True:
            line = await stream.readline()
            if not line:
                break
            text = line.decode('utf-8', errors='replace').rstrip('\n')
            print(self._prefix(service, color) + text, flush=True)
            if log_file:
                log_file.write(f"{text}\n")
                log_file.flush()

    async def run(self, service: str, command: List[str], color: str, cwd: Path):
        """Start a process and wait for it to exit."""
        log_file = open(self.logs_dir / f"{service}.log", 'a') if self.logs_dir else None

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=cwd
            )
            self.processes[service] = process
            self.streams[service] = asyncio.create_task(
                self._pump(service, process.stdout, color, log_file)
            )
            print(f"{Colors.BOLD}{color}▶ {service} started (PID: {process.pid}){Colors.RESET}")

            return_code = await process.wait()
            if return_code != 0 and not self.shutdown_event.is_set():
                print(f"{Colors.BOLD}{Colors.RED}✗ {service} exited with code {return_code}{Colors.RESET}")
            else:
                print(f"{Colors.BOLD}{color}■ {service} stopped{Colors.RESET}")
        finally:
            if log_file:
                log_file.close()

    async def stop_all(self):
        """Terminate every running process, killing stragglers after 5s."""
        if self.shutdown_event.is_set():
            return
        self.shutdown_event.set()
        print(f"\n{Colors.BOLD}{Colors.YELLOW}Shutting down all services...{Colors.RESET}")

        for process in self.processes.values():
            if process.returncode is None:
                try:
                    process.terminate()
                except ProcessLookupError:
                    pass

        try:
            await asyncio.wait_for(
                asyncio.gather(*(p.wait() for p in self.processes.values())),
                timeout=5.0
            )
        except asyncio.TimeoutError:
            for service, process in self.processes.items():
                if process.returncode is None:
                    print(f"{Colors.DIM}Force killing {service}...{Colors.RESET}")
                    process.kill()

        for stream in self.streams.values():
            stream.cancel()

        print(f"{Colors.BOLD}{Colors.GREEN}✓ All services stopped{Colors.RESET}")


async def main():
    parser = argparse.ArgumentParser(description="Start a coordinator and its workers")
    parser.add_argument('--workers', type=int, default=2, help='Number of workers (default: 2)')
    parser.add_argument('--host', type=str, default='127.0.0.1', help='Host for all services')
    parser.add_argument('--coordinator-port', type=int, default=19091, help='Coordinator HTTP port')
    parser.add_argument('--worker-base-port', type=int, default=19092, help='Port of the first worker')
    parser.add_argument('--pool-size', type=int, default=50, help='Pool size for every service')
    parser.add_argument(
        '--submit',
        type=int,
        default=0,
        metavar='N',
        help='Submit a task with N requests once services are up (default: off)'
    )
    parser.add_argument('--logs-dir', type=Path, default=None, help='Directory for per-service log files')
    args = parser.parse_args()

    if args.workers < 1:
        print(f"{Colors.RED}Error: Must have at least 1 worker{Colors.RESET}")
        return 1

    manager = ServiceManager(logs_dir=args.logs_dir)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda: loop.create_task(manager.stop_all()))

    project_root = Path(__file__).parent.parent
    python = sys.executable

    worker_specs = [
        (f"Slave{i + 1}", args.worker_base_port + i)
        for i in range(args.workers)
    ]

    services = []
    for i, (name, port) in enumerate(worker_specs):
        services.append(manager.run(
            name,
            [python, "-m", "worker.server", name, args.host, str(port),
             "--pool-size", str(args.pool_size)],
            WORKER_COLORS[i % len(WORKER_COLORS)],
            cwd=project_root
        ))

    coordinator_cmd = [
        python, "-m", "coordinator.server", "Master", args.host, str(args.coordinator_port),
        "--pool-size", str(args.pool_size)
    ]
    for name, port in worker_specs:
        coordinator_cmd += ["--worker", f"{name}@{args.host}:{port}"]
    services.append(manager.run("Master", coordinator_cmd, Colors.BLUE, cwd=project_root))

    if args.submit:
        async def submit_after_startup():
            await asyncio.sleep(3.0)
            await manager.run(
                "client",
                [python, "-m", "client.main",
                 "--url", f"http://{args.host}:{args.coordinator_port}",
                 "--requests", str(args.submit)],
                Colors.MAGENTA,
                cwd=project_root
            )
        services.append(submit_after_startup())

    try:
        await asyncio.gather(*services, return_exceptions=True)
    finally:
        await manager.stop_all()

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
