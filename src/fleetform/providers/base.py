"""Base backend interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class BackendError(Exception):
    """A backend operation failed."""
    pass


class ResourceNotOwnedError(BackendError):
    """Resource exists but does not carry the expected labels."""
    pass


@dataclass
class ResourceInfo:
    """A container or network as listed by the backend."""
    name: str
    labels: Dict[str, str] = field(default_factory=dict)


def labels_match(actual: Optional[Dict[str, str]], expected: Optional[Dict[str, str]]) -> bool:
    """Check that every expected label is present with the same value."""
    actual = actual or {}
    return all(actual.get(key) == value for key, value in (expected or {}).items())


class BaseBackend(ABC):
    """Container runtime interface that all backends must implement.

    Methods touching an existing resource take the labels that resource
    must carry; a resource without them raises ResourceNotOwnedError.
    """
    
    @abstractmethod
    async def list_containers(self) -> List[ResourceInfo]:
        """List all containers, running or not."""
        pass
        
    @abstractmethod
    async def list_networks(self) -> List[ResourceInfo]:
        """List all networks."""
        pass
        
    @abstractmethod
    async def pull_image(self, image: str) -> None:
        """Pull an image reference."""
        pass
        
    @abstractmethod
    async def create_container(
        self,
        name: str,
        image: str,
        labels: Dict[str, str],
        options: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Create a container without starting it."""
        pass
        
    @abstractmethod
    async def start_container(self, name: str, labels: Dict[str, str]) -> None:
        pass
        
    @abstractmethod
    async def stop_container(self, name: str, labels: Dict[str, str]) -> None:
        pass
        
    @abstractmethod
    async def detach_container(self, name: str, labels: Dict[str, str]) -> None:
        """Disconnect a container from all of its networks."""
        pass
        
    @abstractmethod
    async def remove_container(self, name: str, labels: Dict[str, str]) -> None:
        """Stop and remove a container. Absent containers are ignored."""
        pass
        
    @abstractmethod
    async def create_network(self, name: str, labels: Dict[str, str]) -> None:
        pass
        
    @abstractmethod
    async def remove_network(self, name: str, labels: Dict[str, str]) -> None:
        """Remove a network. Absent networks are ignored."""
        pass
        
    @abstractmethod
    async def connect(self, container: str, network: str, labels: Dict[str, str]) -> None:
        """Attach a container to a network."""
        pass
