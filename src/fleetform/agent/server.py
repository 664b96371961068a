"""HTTP/REST server for agent communication."""

import logging
import os
from pathlib import Path
from typing import Dict, Any, List, Optional

from aiohttp import web

from fleetform.agent.engine import StateEngine
from fleetform.agent.config import ConfigManager
from fleetform.models.task import dump_task_set


logger = logging.getLogger(__name__)


class AgentServer:
    """Agent HTTP server."""

    def __init__(self, socket_path: Path, host: Optional[str], port: int, state_engine: StateEngine, config_manager: ConfigManager):
        """Initialize server."""
        self.socket_path = Path(socket_path)
        self.host = host
        self.port = port
        self.state_engine = state_engine
        self.config_manager = config_manager
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self._setup_routes()

    def _setup_routes(self):
        """Setup API routes."""
        self.app.router.add_post('/api/v1/command', self._handle_command)

    async def start(self):
        """Start the server."""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        # Bind to Unix socket
        if self.socket_path.exists():
            self.socket_path.unlink()
        self.socket_path.parent.mkdir(parents=True, exist_ok=True)

        site_unix = web.UnixSite(self.runner, str(self.socket_path))
        await site_unix.start()
        # Set socket permissions
        os.chmod(self.socket_path, 0o660)
        logger.info(f"Agent listening on unix:{self.socket_path}")

        # Bind to TCP if configured
        if self.host:
            site_tcp = web.TCPSite(self.runner, self.host, self.port)
            await site_tcp.start()
            logger.info(f"Agent listening on tcp://{self.host}:{self.port}")

    async def stop(self):
        """Stop the server."""
        if self.runner:
            await self.runner.cleanup()
        if self.socket_path.exists():
            self.socket_path.unlink()
        logger.info("Agent server stopped")

    async def _handle_command(self, request: web.Request) -> web.Response:
        """Handle standard REST command."""
        try:
            data = await request.json()
            command = data.get("command")
            args = data.get("args") or {}

            response_data = await self._process_command(command, args)
            return web.json_response({"success": True, "data": response_data})

        except Exception as e:
            logger.error(f"Command error: {e}", exc_info=True)
            return web.json_response({"success": False, "error": str(e)}, status=500)

    async def _process_command(self, command: str, args: Dict[str, Any]) -> Any:
        """Process the command logic."""
        handlers = {
            "status": self._handle_status,
            "list": self._handle_list,
            "plan": self._handle_plan,
            "reconcile": self._handle_reconcile,
            "renew": self._handle_renew,
            "reload": self._handle_reload,
            "validate": self._handle_validate,
        }

        handler = handlers.get(command)
        if not handler:
            raise ValueError(f"Unknown command: {command}")

        return await handler(args)

    # -- Command Handlers (Delegated to StateEngine/ConfigManager) --

    async def _handle_status(self, args: Dict[str, Any]) -> Dict[str, Any]:
        container_name = args.get("container")
        if container_name:
            status = await self.state_engine.get_container_status(container_name)
            if not status:
                raise ValueError(f"Container {container_name} not found")
            return {"containers": {container_name: status}}

        containers = await self.state_engine.get_all_container_statuses()
        last_report = self.state_engine.last_report
        return {
            "agent": {
                "running": True,
                "prefix": self.state_engine.config.prefix,
                "last_reconciliation": self.state_engine.last_reconciliation.isoformat()
                    if self.state_engine.last_reconciliation else None,
                "last_report": last_report.to_dict() if last_report else None,
                "pending_renewals": self.state_engine.pending_renewals,
            },
            "containers": containers,
        }

    async def _handle_list(self, args: Dict[str, Any]) -> Dict[str, Any]:
        resource_type = args.get("type") or "all"
        info = await self.state_engine.observe()
        result = {}

        if resource_type in ["all", "containers"]:
            result["containers"] = {
                name: {
                    "name": name,
                    "declared": name in self.config_manager.containers,
                    "fingerprint": info.container_hashes.get(name, ""),
                } for name in info.container_names
            }

        if resource_type in ["all", "networks"]:
            result["networks"] = {
                name: {
                    "name": name,
                    "used_by": [
                        container for container, plan in self.config_manager.containers.items()
                        if plan.enabled and name in plan.networks
                    ],
                } for name in info.network_names
            }
        return result

    async def _handle_plan(self, args: Dict[str, Any]) -> Dict[str, Any]:
        task_set = await self.state_engine.plan()
        return {"stages": dump_task_set(task_set)}

    async def _handle_reconcile(self, args: Dict[str, Any]) -> Dict[str, Any]:
        report = await self.state_engine.reconcile()
        return {"reconciled": report.success, "report": report.to_dict()}

    async def _handle_renew(self, args: Dict[str, Any]) -> Dict[str, Any]:
        containers: List[str] = args.get("containers") or []
        networks: List[str] = args.get("networks") or []
        if not containers and not networks:
            raise ValueError("Container or network names required")
        self.state_engine.request_renew(containers, networks)

        result: Dict[str, Any] = {"pending_renewals": self.state_engine.pending_renewals}
        if args.get("apply"):
            report = await self.state_engine.reconcile()
            result["report"] = report.to_dict()
        return result

    async def _handle_reload(self, args: Dict[str, Any]) -> Dict[str, Any]:
        await self.config_manager.load()
        return {"reloaded": True, "containers": len(self.config_manager.containers)}

    async def _handle_validate(self, args: Dict[str, Any]) -> Dict[str, Any]:
        candidate = ConfigManager(self.config_manager.config_dir)
        try:
            await candidate.load()
        except Exception as e:
            return {"valid": False, "error": str(e)}

        enabled = [name for name, plan in candidate.containers.items() if plan.enabled]
        networks = {network for name in enabled for network in candidate.containers[name].networks}
        return {
            "valid": not candidate.errors,
            "error": "; ".join(candidate.errors) if candidate.errors else None,
            "containers": len(candidate.containers),
            "enabled": len(enabled),
            "networks": len(networks),
        }
