"""
Task set generation.

Compares what a host runs with the declared fleet and turns the difference
into an ordered list of parallel sets:

1. image pulls, one set per image
2. container deletions
3. network deletions
4. network and container creations
5. detaching every desired container from its networks
6. network attachments, one set per desired container
7. starting the created containers

Deleting a name always happens in an earlier set than creating it, so a
renewal never races its own teardown. Generation does no I/O and never
modifies its arguments.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from fleetform.models.config import PlannerConfig
from fleetform.models.container import ContainerMap
from fleetform.models.state import HostResourceInfo
from fleetform.models.task import (
    AttachNetworkTask,
    CreateContainerTask,
    CreateNetworkTask,
    DeleteContainerTask,
    DeleteNetworkTask,
    DetachContainerTask,
    PullImageTask,
    StartContainerTask,
    TaskSet,
)
from fleetform.utils.dedup import filter_duplicates
from fleetform.utils.fingerprint import fingerprint_plan


@dataclass(frozen=True)
class ResourceDiff:
    """Logical names to change on a host, each list in first-seen order."""
    containers: List[str] = field(default_factory=list)
    networks: List[str] = field(default_factory=list)
    renew_containers: List[str] = field(default_factory=list)
    renew_networks: List[str] = field(default_factory=list)
    delete_containers: List[str] = field(default_factory=list)
    delete_networks: List[str] = field(default_factory=list)
    create_containers: List[str] = field(default_factory=list)
    create_networks: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    fingerprints: Dict[str, str] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        """Whether anything has to be created or deleted."""
        return bool(
            self.delete_containers
            or self.delete_networks
            or self.create_containers
            or self.create_networks
        )


def compute_diff(
    info: HostResourceInfo,
    container_map: ContainerMap,
    renew_container_names: Iterable[str] = (),
    renew_network_names: Iterable[str] = (),
) -> ResourceDiff:
    """Work out which containers and networks to delete and create."""
    renew_containers = list(renew_container_names)
    renew_networks = list(renew_network_names)

    # A name listed twice means the host is already inconsistent
    observed_containers = filter_duplicates(info.container_names, renew_containers.append)
    observed_networks = filter_duplicates(info.network_names, renew_networks.append)

    containers = filter_duplicates(
        name for name, plan in container_map.items() if plan.enabled
    )
    networks = filter_duplicates(
        network for name in containers for network in container_map[name].networks
    )

    observed_container_set = set(observed_containers)
    fingerprints = {}
    for name in containers:
        fingerprints[name] = fingerprint_plan(container_map[name])
        # Containers not running yet are created below anyway
        if name in observed_container_set and fingerprints[name] != info.container_hashes.get(name, ""):
            renew_containers.append(name)

    renew_containers = filter_duplicates(renew_containers)
    renew_networks = filter_duplicates(renew_networks)

    container_set = set(containers)
    network_set = set(networks)
    observed_network_set = set(observed_networks)

    delete_containers = filter_duplicates(
        [name for name in observed_containers if name not in container_set] + renew_containers
    )
    delete_networks = filter_duplicates(
        [name for name in observed_networks if name not in network_set] + renew_networks
    )
    # A container needs a plan to be recreated, renewing an undeclared one just removes it
    create_containers = filter_duplicates(
        [name for name in containers if name not in observed_container_set]
        + [name for name in renew_containers if name in container_set]
    )
    create_networks = filter_duplicates(
        [name for name in networks if name not in observed_network_set]
        + renew_networks
    )

    images = filter_duplicates(container_map[name].image_ref for name in create_containers)

    return ResourceDiff(
        containers=containers,
        networks=networks,
        renew_containers=renew_containers,
        renew_networks=renew_networks,
        delete_containers=delete_containers,
        delete_networks=delete_networks,
        create_containers=create_containers,
        create_networks=create_networks,
        images=images,
        fingerprints=fingerprints,
    )


def build_task_set(
    diff: ResourceDiff,
    container_map: ContainerMap,
    prefix: str,
    options: Optional[PlannerConfig] = None,
) -> TaskSet:
    """Lay out the tasks for a diff as ordered parallel sets."""
    options = options or PlannerConfig()
    if not diff.changed:
        return []

    task_set: TaskSet = []

    pulls = [PullImageTask(name=image) for image in diff.images]
    if options.batch_image_pulls:
        task_set.append(pulls)
    else:
        task_set.extend([pull] for pull in pulls)

    task_set.append([
        DeleteContainerTask(name=prefix + name) for name in diff.delete_containers
    ])
    task_set.append([
        DeleteNetworkTask(name=prefix + name) for name in diff.delete_networks
    ])

    # Containers can be created before their networks are attached
    task_set.append(
        [CreateNetworkTask(name=prefix + name) for name in diff.create_networks]
        + [
            CreateContainerTask(name=prefix + name, plan=container_map[name])
            for name in diff.create_containers
        ]
    )

    # Known attachment baseline for every desired container, not only new ones
    task_set.append([
        DetachContainerTask(name=prefix + name) for name in diff.containers
    ])

    attaches = [
        [
            AttachNetworkTask(name=prefix + network, target=prefix + name)
            for network in container_map[name].networks
        ]
        for name in diff.containers
    ]
    if options.batch_network_attaches:
        task_set.append([task for stage in attaches for task in stage])
    else:
        task_set.extend(attaches)

    task_set.append([
        StartContainerTask(name=prefix + name) for name in diff.create_containers
    ])

    return [stage for stage in task_set if stage]


def generate_task_set(
    info: HostResourceInfo,
    container_map: ContainerMap,
    renew_container_names: Iterable[str] = (),
    renew_network_names: Iterable[str] = (),
    prefix: str = "",
    options: Optional[PlannerConfig] = None,
) -> TaskSet:
    """Generate the task set converging a host to the declared fleet.

    A host that already matches the fleet, with nothing to renew, yields an
    empty task set.
    """
    diff = compute_diff(info, container_map, renew_container_names, renew_network_names)
    return build_task_set(diff, container_map, prefix, options)
