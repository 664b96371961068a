"""Fleetform agent: reconciles the host on a timer and on config changes."""

import asyncio
import logging
import os
import signal
from pathlib import Path
from typing import List, Optional

from watchfiles import awatch

from fleetform.agent.config import ConfigManager
from fleetform.agent.engine import ApplyReport, StateEngine
from fleetform.agent.server import AgentServer
from fleetform.providers.docker import DockerBackend
from fleetform.utils.logging import setup_logging


logger = logging.getLogger(__name__)


class FleetformAgent:
    """Owns the config, the docker backend, the engine and the command server."""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = config_dir or Path("./configs")
        self.config_manager: Optional[ConfigManager] = None
        self.state_engine: Optional[StateEngine] = None
        self.server: Optional[AgentServer] = None
        self.shutdown_event = asyncio.Event()
        self._tasks: List[asyncio.Task] = []

    async def initialize(self):
        """Load configuration and connect to the docker daemon."""
        self.config_manager = ConfigManager(self.config_dir)
        await self.config_manager.load()

        config = self.config_manager.config
        setup_logging(config.agent.log_level)
        for error in self.config_manager.errors:
            logger.warning(f"Configuration problem: {error}")

        state_dir = Path(config.agent.state_dir)
        state_dir.mkdir(parents=True, exist_ok=True)

        backend = DockerBackend()
        await backend.initialize(config.docker)
        if not await backend.ping():
            # The loop keeps retrying, the daemon may come up later
            logger.warning("Docker daemon did not answer, reconciliation will fail until it does")

        self.state_engine = StateEngine(config_manager=self.config_manager, backend=backend)

        socket_path = Path(config.agent.socket_path)
        if not socket_path.is_absolute():
            socket_path = state_dir / socket_path.name

        self.server = AgentServer(
            socket_path=socket_path,
            host=config.agent.host,
            port=config.agent.port,
            state_engine=self.state_engine,
            config_manager=self.config_manager,
        )
        logger.info(
            f"Agent initialized: prefix={config.prefix!r}, "
            f"{len(self.config_manager.containers)} containers declared"
        )

    async def run(self):
        """Serve commands and reconcile until SIGTERM or SIGINT."""
        await self.initialize()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self.shutdown)

        try:
            await self.server.start()
            self._spawn(self._reconciliation_loop())
            self._spawn(self._config_watch_loop())
            await self.shutdown_event.wait()
        finally:
            await self._cleanup()

    def _spawn(self, coro):
        self._tasks = [t for t in self._tasks if not t.done()]
        self._tasks.append(asyncio.create_task(coro))

    async def _reconciliation_loop(self):
        while not self.shutdown_event.is_set():
            await self._reconcile_now()

            # Interval is re-read so reloads take effect
            interval = self.config_manager.config.agent.reconciliation_interval
            try:
                await asyncio.wait_for(self.shutdown_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    async def _config_watch_loop(self):
        """Reload and reconcile when config.yaml or a node file changes."""
        logger.info(f"Watching {self.config_manager.config_dir} for changes")
        try:
            async for _ in awatch(self.config_manager.config_dir, stop_event=self.shutdown_event):
                if not await self.config_manager.watch_for_changes():
                    continue
                logger.info("Configuration changed, reloading")
                try:
                    await self.config_manager.load()
                except Exception as e:
                    logger.error(f"Failed to reload configuration, keeping previous fleet: {e}")
                    continue
                self._spawn(self._reconcile_now())
        except Exception as e:
            if not self.shutdown_event.is_set():
                logger.error(f"Config watch error: {e}", exc_info=True)

    async def _reconcile_now(self) -> Optional[ApplyReport]:
        try:
            report = await self.state_engine.reconcile()
        except Exception as e:
            # Observation failed, usually the daemon is unreachable
            logger.error(f"Reconciliation error: {e}", exc_info=True)
            return None
        pending = self.state_engine.pending_renewals["containers"]
        if pending:
            logger.info(f"Containers queued for recreation: {', '.join(pending)}")
        return report

    def shutdown(self):
        """Signal shutdown."""
        logger.info("Shutdown requested")
        self.shutdown_event.set()

    async def _cleanup(self):
        for task in self._tasks:
            if not task.done():
                task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        if self.server:
            await self.server.stop()
        logger.info("Agent stopped")


async def run_agent():
    """Run the agent, FLEETFORM_CONFIG_DIR overrides the config directory."""
    config_dir = os.environ.get("FLEETFORM_CONFIG_DIR")
    agent = FleetformAgent(config_dir=Path(config_dir) if config_dir else None)
    await agent.run()
