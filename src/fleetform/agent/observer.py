"""Observation of the resources fleetform owns on a host."""

import asyncio
import logging
from typing import Iterable, List, Optional, Tuple

from fleetform.models.labels import HASH_LABEL, SOURCE_LABEL, SOURCE_VALUE
from fleetform.models.state import HostResourceInfo
from fleetform.providers.base import BaseBackend, ResourceInfo


logger = logging.getLogger(__name__)


def _owned_names(
    resources: Iterable[ResourceInfo],
    prefix: str,
    label_key: Optional[str],
    label_value: Optional[str],
) -> List[Tuple[str, ResourceInfo]]:
    """Logical names of resources under prefix that carry the marker label."""
    owned = []
    for resource in resources:
        name = resource.name or ""
        if name.startswith("/"):
            name = name[1:]
        if not name.startswith(prefix):
            continue
        # Filter is skipped unless both key and value are given
        if label_key and label_value and (resource.labels or {}).get(label_key) != label_value:
            continue
        owned.append((name[len(prefix):], resource))
    return owned


async def get_host_resource_info(
    backend: BaseBackend,
    prefix: str,
    hash_key: str = HASH_LABEL,
    label_key: Optional[str] = SOURCE_LABEL,
    label_value: Optional[str] = SOURCE_VALUE,
) -> HostResourceInfo:
    """Query the backend for owned containers and networks.

    Duplicate names are reported as seen; the planner treats them as a reason
    to renew the resource.
    """
    containers, networks = await asyncio.gather(
        backend.list_containers(),
        backend.list_networks(),
    )
    
    container_names: List[str] = []
    container_hashes = {}
    for name, resource in _owned_names(containers, prefix, label_key, label_value):
        container_names.append(name)
        container_hashes[name] = (resource.labels or {}).get(hash_key) or ""
        
    network_names = [
        name for name, _ in _owned_names(networks, prefix, label_key, label_value)
    ]
    
    logger.debug(
        f"Observed {len(container_names)} containers and {len(network_names)} networks "
        f"under prefix {prefix!r}"
    )
    return HostResourceInfo(
        container_names=container_names,
        network_names=network_names,
        container_hashes=container_hashes,
    )
