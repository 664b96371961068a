"""Shared fixtures."""

from typing import Any, Dict, List, Optional

import pytest

from fleetform.models.container import ContainerPlan
from fleetform.providers.base import (
    BaseBackend,
    BackendError,
    ResourceInfo,
    ResourceNotOwnedError,
    labels_match,
)


class FakeBackend(BaseBackend):
    """In-memory backend behaving like a docker host."""

    def __init__(self):
        self.containers: Dict[str, Dict[str, Any]] = {}
        self.networks: Dict[str, Dict[str, str]] = {}
        self.images: List[str] = []
        self.calls: List[tuple] = []
        self.failures: Dict[tuple, Exception] = {}

    def _record(self, *call):
        self.calls.append(call)
        if call in self.failures:
            raise self.failures[call]

    def _owned_container(self, name: str, labels: Dict[str, str]) -> Dict[str, Any]:
        container = self.containers.get(name)
        if container is None:
            raise BackendError(f"Container {name} not found")
        if not labels_match(container["labels"], labels):
            raise ResourceNotOwnedError(name)
        return container

    def _owned_network(self, name: str, labels: Dict[str, str]) -> Dict[str, str]:
        if name not in self.networks:
            raise BackendError(f"Network {name} not found")
        if not labels_match(self.networks[name], labels):
            raise ResourceNotOwnedError(name)
        return self.networks[name]

    async def list_containers(self) -> List[ResourceInfo]:
        return [
            ResourceInfo(name="/" + name, labels=dict(container["labels"]))
            for name, container in self.containers.items()
        ]

    async def list_networks(self) -> List[ResourceInfo]:
        return [ResourceInfo(name=name, labels=dict(labels)) for name, labels in self.networks.items()]

    async def pull_image(self, image: str) -> None:
        self._record("pull", image)
        self.images.append(image)

    async def create_container(self, name, image, labels, options=None) -> None:
        self._record("create_container", name)
        if name in self.containers:
            raise BackendError(f"Conflict: container {name} exists")
        self.containers[name] = {
            "image": image,
            "labels": dict(labels),
            "options": dict(options or {}),
            "networks": ["bridge"],
            "running": False,
        }

    async def start_container(self, name, labels) -> None:
        self._record("start", name)
        self._owned_container(name, labels)["running"] = True

    async def stop_container(self, name, labels) -> None:
        self._record("stop", name)
        self._owned_container(name, labels)["running"] = False

    async def detach_container(self, name, labels) -> None:
        self._record("detach", name)
        self._owned_container(name, labels)["networks"] = []

    async def remove_container(self, name, labels) -> None:
        self._record("remove_container", name)
        if name not in self.containers:
            return
        self._owned_container(name, labels)
        del self.containers[name]

    async def create_network(self, name, labels) -> None:
        self._record("create_network", name)
        if name in self.networks:
            raise BackendError(f"Conflict: network {name} exists")
        self.networks[name] = dict(labels)

    async def remove_network(self, name, labels) -> None:
        self._record("remove_network", name)
        if name not in self.networks:
            return
        self._owned_network(name, labels)
        del self.networks[name]
        for container in self.containers.values():
            if name in container["networks"]:
                container["networks"].remove(name)

    async def connect(self, container, network, labels) -> None:
        self._record("connect", container, network)
        target = self._owned_container(container, labels)
        self._owned_network(network, labels)
        target["networks"].append(network)


@pytest.fixture
def fake_backend():
    """Empty in-memory backend."""
    return FakeBackend()


@pytest.fixture
def web_plan():
    """Plan for a single nginx container on net1."""
    return ContainerPlan(image="nginx", tag="latest", networks=["net1"], enabled=True)
