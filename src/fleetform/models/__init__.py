"""Pydantic models for configuration, desired state and tasks."""

from fleetform.models.config import FleetformConfig, AgentConfig, DockerConfig, PlannerConfig
from fleetform.models.container import ContainerPlan, ContainerMap
from fleetform.models.state import HostResourceInfo
from fleetform.models.task import (
    TaskKind,
    Task,
    ParallelSet,
    TaskSet,
    PullImageTask,
    CreateContainerTask,
    StartContainerTask,
    DetachContainerTask,
    DeleteContainerTask,
    CreateNetworkTask,
    DeleteNetworkTask,
    AttachNetworkTask,
)

__all__ = [
    "FleetformConfig",
    "AgentConfig",
    "DockerConfig",
    "PlannerConfig",
    "ContainerPlan",
    "ContainerMap",
    "HostResourceInfo",
    "TaskKind",
    "Task",
    "ParallelSet",
    "TaskSet",
    "PullImageTask",
    "CreateContainerTask",
    "StartContainerTask",
    "DetachContainerTask",
    "DeleteContainerTask",
    "CreateNetworkTask",
    "DeleteNetworkTask",
    "AttachNetworkTask",
]
