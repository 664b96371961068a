"""Execution of single tasks against a backend."""

import logging
from typing import Awaitable, Callable, Dict

from fleetform.models.container import ContainerPlan
from fleetform.models.labels import HASH_LABEL, MARKER_LABELS, NAME_LABEL
from fleetform.models.task import (
    AttachNetworkTask,
    BaseTask,
    CreateContainerTask,
    TaskKind,
)
from fleetform.providers.base import BaseBackend
from fleetform.utils.fingerprint import fingerprint_plan


logger = logging.getLogger(__name__)


class UnknownTaskError(TypeError):
    """A task outside the known task kinds reached the dispatcher."""
    pass


async def container_create(backend: BaseBackend, name: str, plan: ContainerPlan) -> None:
    """Create a container labelled with its plan fingerprint."""
    labels = {
        NAME_LABEL: name,
        **MARKER_LABELS,
        HASH_LABEL: fingerprint_plan(plan),
    }
    await backend.create_container(name, plan.image_ref, labels, plan.backend_options)


async def network_create(backend: BaseBackend, name: str) -> None:
    await backend.create_network(name, {NAME_LABEL: name, **MARKER_LABELS})


async def _pull_image(backend: BaseBackend, task: BaseTask) -> None:
    await backend.pull_image(task.name)


async def _create_container(backend: BaseBackend, task: CreateContainerTask) -> None:
    await container_create(backend, task.name, task.plan)


async def _start_container(backend: BaseBackend, task: BaseTask) -> None:
    await backend.start_container(task.name, dict(MARKER_LABELS))


async def _detach_container(backend: BaseBackend, task: BaseTask) -> None:
    await backend.detach_container(task.name, dict(MARKER_LABELS))


async def _delete_container(backend: BaseBackend, task: BaseTask) -> None:
    await backend.remove_container(task.name, dict(MARKER_LABELS))


async def _create_network(backend: BaseBackend, task: BaseTask) -> None:
    await network_create(backend, task.name)


async def _delete_network(backend: BaseBackend, task: BaseTask) -> None:
    await backend.remove_network(task.name, dict(MARKER_LABELS))


async def _attach_network(backend: BaseBackend, task: AttachNetworkTask) -> None:
    await backend.connect(task.target, task.name, dict(MARKER_LABELS))


TASK_HANDLERS: Dict[TaskKind, Callable[[BaseBackend, BaseTask], Awaitable[None]]] = {
    TaskKind.PULL_IMAGE: _pull_image,
    TaskKind.CREATE_CONTAINER: _create_container,
    TaskKind.START_CONTAINER: _start_container,
    TaskKind.DETACH_CONTAINER: _detach_container,
    TaskKind.DELETE_CONTAINER: _delete_container,
    TaskKind.CREATE_NETWORK: _create_network,
    TaskKind.DELETE_NETWORK: _delete_network,
    TaskKind.ATTACH_NETWORK: _attach_network,
}


async def handle_task(backend: BaseBackend, task: BaseTask) -> None:
    """Run the one backend operation a task stands for.

    No retries and no ordering: the caller drives the task set.
    """
    handler = TASK_HANDLERS.get(getattr(task, "kind", None))
    if handler is None:
        raise UnknownTaskError(f"Unknown task type {getattr(task, 'kind', task)!r}")

    logger.debug(f"Dispatching {task.describe()}")
    await handler(backend, task)
