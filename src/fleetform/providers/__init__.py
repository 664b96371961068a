"""Container runtime backends for fleetform."""

from fleetform.providers.base import (
    BaseBackend,
    BackendError,
    ResourceInfo,
    ResourceNotOwnedError,
    labels_match,
)
from fleetform.providers.docker import DockerBackend

__all__ = [
    "BaseBackend",
    "BackendError",
    "ResourceInfo",
    "ResourceNotOwnedError",
    "labels_match",
    "DockerBackend",
]
