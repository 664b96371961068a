"""
Fleetform - declarative container fleet reconciliation for a single host.

Observes the containers and networks a host is running, compares them with the
declared fleet and produces a staged task set that converges the two.
"""

__version__ = "1.0.0"
__author__ = "Fleetform Development Team"

# Re-export key components for easier access
from fleetform.models.config import FleetformConfig
from fleetform.models.container import ContainerPlan
from fleetform.models.state import HostResourceInfo
from fleetform.models.task import Task, TaskKind, TaskSet

__all__ = [
    "FleetformConfig",
    "ContainerPlan",
    "HostResourceInfo",
    "Task",
    "TaskKind",
    "TaskSet",
]
