"""Docker backend built on the docker SDK."""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import docker
from docker.errors import DockerException, NotFound

from fleetform.models.config import DockerConfig
from fleetform.providers.base import (
    BaseBackend,
    BackendError,
    ResourceInfo,
    ResourceNotOwnedError,
    labels_match,
)


logger = logging.getLogger(__name__)


class DockerBackend(BaseBackend):
    """Backend driving a local Docker daemon.

    The SDK is blocking, so every call is offloaded to a worker thread. The
    client is safe to share between concurrent calls.
    """
    
    def __init__(self, client: Optional[docker.DockerClient] = None):
        """Initialize docker backend."""
        self._client = client
        
    async def initialize(self, config: DockerConfig) -> None:
        """Connect to the daemon described by config."""
        if self._client is not None:
            return
        self._client = await self._call(self._connect, config)
        logger.debug("Connected to docker daemon")
        
    @staticmethod
    def _connect(config: DockerConfig) -> docker.DockerClient:
        if config.base_url:
            return docker.DockerClient(base_url=config.base_url, timeout=config.timeout)
        return docker.from_env(timeout=config.timeout)
        
    @property
    def client(self) -> docker.DockerClient:
        """Get the docker client."""
        if self._client is None:
            raise BackendError("Docker backend is not initialized")
        return self._client
        
    async def _call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a blocking SDK call in a thread, translating SDK errors."""
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except DockerException as e:
            name = getattr(func, "__name__", "call").lstrip("_")
            raise BackendError(f"{name} failed: {e}") from e
            
    async def ping(self) -> bool:
        """Check that the daemon answers."""
        try:
            return bool(await self._call(self.client.ping))
        except BackendError as e:
            logger.warning(f"Docker daemon not reachable: {e}")
            return False
            
    async def list_containers(self) -> List[ResourceInfo]:
        return await self._call(self._list_containers)
        
    async def list_networks(self) -> List[ResourceInfo]:
        return await self._call(self._list_networks)
        
    async def pull_image(self, image: str) -> None:
        await self._call(self._pull_image, image)
        
    async def create_container(
        self,
        name: str,
        image: str,
        labels: Dict[str, str],
        options: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self._call(self._create_container, name, image, labels, options or {})
        
    async def start_container(self, name: str, labels: Dict[str, str]) -> None:
        await self._call(self._start_container, name, labels)
        
    async def stop_container(self, name: str, labels: Dict[str, str]) -> None:
        await self._call(self._stop_container, name, labels)
        
    async def detach_container(self, name: str, labels: Dict[str, str]) -> None:
        await self._call(self._detach_container, name, labels)
        
    async def remove_container(self, name: str, labels: Dict[str, str]) -> None:
        await self._call(self._remove_container, name, labels)
        
    async def create_network(self, name: str, labels: Dict[str, str]) -> None:
        await self._call(self._create_network, name, labels)
        
    async def remove_network(self, name: str, labels: Dict[str, str]) -> None:
        await self._call(self._remove_network, name, labels)
        
    async def connect(self, container: str, network: str, labels: Dict[str, str]) -> None:
        await self._call(self._connect_network, container, network, labels)
        
    # -- Blocking implementations (run in worker threads) --
    
    def _list_containers(self) -> List[ResourceInfo]:
        # Low level listing avoids one inspect call per container
        result = []
        for info in self.client.api.containers(all=True):
            names = info.get("Names") or [""]
            result.append(ResourceInfo(name=names[0], labels=info.get("Labels") or {}))
        return result
        
    def _list_networks(self) -> List[ResourceInfo]:
        return [
            ResourceInfo(name=info.get("Name", ""), labels=info.get("Labels") or {})
            for info in self.client.api.networks()
        ]
        
    def _get_container(self, name: str, labels: Dict[str, str], missing_ok: bool = False):
        try:
            container = self.client.containers.get(name)
        except NotFound:
            if missing_ok:
                return None
            raise BackendError(f"Container {name} not found")
            
        if not labels_match(container.labels, labels):
            raise ResourceNotOwnedError(f"Container {name} is not managed by fleetform")
        return container
        
    def _get_network(self, name: str, labels: Dict[str, str], missing_ok: bool = False):
        try:
            network = self.client.networks.get(name)
        except NotFound:
            if missing_ok:
                return None
            raise BackendError(f"Network {name} not found")
            
        if not labels_match(network.attrs.get("Labels"), labels):
            raise ResourceNotOwnedError(f"Network {name} is not managed by fleetform")
        return network
        
    def _pull_image(self, image: str) -> None:
        logger.info(f"Pulling image {image}")
        self.client.images.pull(image)
        logger.info(f"Image {image} pulled successfully")
        
    def _create_container(self, name: str, image: str, labels: Dict[str, str], options: Dict[str, Any]) -> None:
        logger.info(f"Creating container {name} from {image}")
        self.client.containers.create(image, name=name, labels=labels, **options)
        
    def _start_container(self, name: str, labels: Dict[str, str]) -> None:
        container = self._get_container(name, labels)
        logger.info(f"Starting container {name}")
        container.start()
        
    def _stop_container(self, name: str, labels: Dict[str, str]) -> None:
        container = self._get_container(name, labels)
        if container.status != "running":
            logger.debug(f"Container {name} already stopped")
            return
        logger.info(f"Stopping container {name}")
        container.stop()
        
    def _detach_container(self, name: str, labels: Dict[str, str]) -> None:
        container = self._get_container(name, labels)
        container.reload()
        networks = (container.attrs.get("NetworkSettings") or {}).get("Networks") or {}
        for network in networks:
            logger.debug(f"Disconnecting {name} from {network}")
            self.client.api.disconnect_container_from_network(container.id, network, force=True)
            
    def _remove_container(self, name: str, labels: Dict[str, str]) -> None:
        container = self._get_container(name, labels, missing_ok=True)
        if container is None:
            logger.debug(f"Container {name} already absent")
            return
        logger.info(f"Removing container {name}")
        if container.status == "running":
            container.stop()
        container.remove(force=True)
        
    def _create_network(self, name: str, labels: Dict[str, str]) -> None:
        logger.info(f"Creating network {name}")
        self.client.networks.create(name, labels=labels)
        
    def _remove_network(self, name: str, labels: Dict[str, str]) -> None:
        network = self._get_network(name, labels, missing_ok=True)
        if network is None:
            logger.debug(f"Network {name} already absent")
            return
        logger.info(f"Removing network {name}")
        # A network with members cannot be removed
        network.reload()
        for container in network.containers:
            network.disconnect(container, force=True)
        network.remove()
        
    def _connect_network(self, container: str, network: str, labels: Dict[str, str]) -> None:
        target = self._get_container(container, labels)
        net = self._get_network(network, labels)
        logger.info(f"Attaching {container} to {network}")
        net.connect(target)
