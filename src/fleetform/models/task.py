"""Task models produced by the planner and consumed by the dispatcher."""

from enum import Enum
from typing import Annotated, List, Literal, Union
from pydantic import BaseModel, Field, TypeAdapter

from fleetform.models.container import ContainerPlan


class TaskKind(str, Enum):
    """Closed set of operations a task set may contain."""
    PULL_IMAGE = "image.pull"
    CREATE_CONTAINER = "container.create"
    START_CONTAINER = "container.start"
    DETACH_CONTAINER = "container.detach"
    DELETE_CONTAINER = "container.delete"
    CREATE_NETWORK = "network.create"
    DELETE_NETWORK = "network.delete"
    ATTACH_NETWORK = "network.attach"


class BaseTask(BaseModel):
    """A single backend operation on one physical resource."""
    kind: TaskKind
    name: str = Field(..., description="Physical resource name or image reference")

    class Config:
        """Pydantic config."""
        frozen = True

    def describe(self) -> str:
        """Short human readable form."""
        return f"{self.kind.value} {self.name}"


class PullImageTask(BaseTask):
    """Pull an image reference (``image:tag``)."""
    kind: Literal[TaskKind.PULL_IMAGE] = TaskKind.PULL_IMAGE


class CreateContainerTask(BaseTask):
    """Create a container from its plan."""
    kind: Literal[TaskKind.CREATE_CONTAINER] = TaskKind.CREATE_CONTAINER
    plan: ContainerPlan


class StartContainerTask(BaseTask):
    kind: Literal[TaskKind.START_CONTAINER] = TaskKind.START_CONTAINER


class DetachContainerTask(BaseTask):
    """Disconnect a container from every network it is attached to."""
    kind: Literal[TaskKind.DETACH_CONTAINER] = TaskKind.DETACH_CONTAINER


class DeleteContainerTask(BaseTask):
    kind: Literal[TaskKind.DELETE_CONTAINER] = TaskKind.DELETE_CONTAINER


class CreateNetworkTask(BaseTask):
    kind: Literal[TaskKind.CREATE_NETWORK] = TaskKind.CREATE_NETWORK


class DeleteNetworkTask(BaseTask):
    kind: Literal[TaskKind.DELETE_NETWORK] = TaskKind.DELETE_NETWORK


class AttachNetworkTask(BaseTask):
    """Connect container ``target`` to network ``name``."""
    kind: Literal[TaskKind.ATTACH_NETWORK] = TaskKind.ATTACH_NETWORK
    target: str = Field(..., description="Physical container name")

    def describe(self) -> str:
        return f"{self.kind.value} {self.name} -> {self.target}"


Task = Annotated[
    Union[
        PullImageTask,
        CreateContainerTask,
        StartContainerTask,
        DetachContainerTask,
        DeleteContainerTask,
        CreateNetworkTask,
        DeleteNetworkTask,
        AttachNetworkTask,
    ],
    Field(discriminator="kind"),
]

# Tasks in one parallel set target distinct resources and may run concurrently
ParallelSet = List[Task]

# Parallel sets run strictly in order
TaskSet = List[ParallelSet]

task_set_adapter = TypeAdapter(TaskSet)


def dump_task_set(task_set: TaskSet) -> list:
    """Serialize a task set to JSON-compatible data."""
    return task_set_adapter.dump_python(task_set, mode="json")


def load_task_set(data: list) -> TaskSet:
    """Parse JSON-compatible data back into a task set."""
    return task_set_adapter.validate_python(data)
