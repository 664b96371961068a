"""State reconciliation engine."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Iterable, List, Optional
from datetime import datetime

from fleetform.agent.config import ConfigManager
from fleetform.agent.dispatcher import handle_task
from fleetform.agent.observer import get_host_resource_info
from fleetform.agent.planner import ResourceDiff, build_task_set, compute_diff
from fleetform.models.config import FleetformConfig
from fleetform.models.state import HostResourceInfo
from fleetform.models.task import BaseTask, TaskSet
from fleetform.providers.base import BaseBackend
from fleetform.utils.dedup import filter_duplicates
from fleetform.utils.fingerprint import fingerprint_plan


logger = logging.getLogger(__name__)


@dataclass
class TaskFailure:
    """A task that raised while being applied."""
    stage: int
    task: BaseTask
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "task": self.task.describe(),
            "error": self.error,
        }


@dataclass
class ApplyReport:
    """Outcome of applying a task set."""
    stages_total: int = 0
    stages_applied: int = 0
    tasks_applied: int = 0
    failures: List[TaskFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures and self.stages_applied == self.stages_total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "stages_total": self.stages_total,
            "stages_applied": self.stages_applied,
            "tasks_applied": self.tasks_applied,
            "failures": [failure.to_dict() for failure in self.failures],
        }


class StateEngine:
    """Observes the host, plans the task set and drives it to completion."""

    def __init__(self, config_manager: ConfigManager, backend: BaseBackend):
        """Initialize state engine."""
        self.config_manager = config_manager
        self.backend = backend
        self.last_reconciliation: Optional[datetime] = None
        self.last_report: Optional[ApplyReport] = None
        self._reconciliation_lock = asyncio.Lock()
        self._renew_containers: List[str] = []
        self._renew_networks: List[str] = []

    @property
    def config(self) -> FleetformConfig:
        return self.config_manager.config or FleetformConfig()

    @property
    def pending_renewals(self) -> Dict[str, List[str]]:
        """Renewals waiting for the next reconciliation."""
        return {
            "containers": list(self._renew_containers),
            "networks": list(self._renew_networks),
        }

    def request_renew(self, containers: Iterable[str] = (), networks: Iterable[str] = ()):
        """Force containers and networks to be recreated on the next reconciliation."""
        self._renew_containers = filter_duplicates([*self._renew_containers, *containers])
        self._renew_networks = filter_duplicates([*self._renew_networks, *networks])
        logger.info(
            f"Renewal requested: containers={self._renew_containers} "
            f"networks={self._renew_networks}"
        )

    async def observe(self) -> HostResourceInfo:
        """Read the resources fleetform owns from the backend."""
        return await get_host_resource_info(self.backend, self.config.prefix)

    async def diff(self, info: Optional[HostResourceInfo] = None) -> ResourceDiff:
        """Compare the host with the declared fleet."""
        if info is None:
            info = await self.observe()
        return compute_diff(
            info,
            self.config_manager.containers,
            self._renew_containers,
            self._renew_networks,
        )

    async def plan(self) -> TaskSet:
        """Task set the next reconciliation would apply."""
        return self._build_task_set(await self.diff())

    def _build_task_set(self, diff: ResourceDiff) -> TaskSet:
        return build_task_set(
            diff,
            self.config_manager.containers,
            self.config.prefix,
            self.config.planner,
        )

    async def reconcile(self) -> ApplyReport:
        """Perform full state reconciliation."""
        async with self._reconciliation_lock:
            start_time = datetime.now()
            logger.info("Starting state reconciliation")

            # Renewals are consumed by the cycle that plans them
            diff = await self.diff()
            task_set = self._build_task_set(diff)
            self._renew_containers = []
            self._renew_networks = []

            if not task_set:
                logger.info("Host is in sync, nothing to do")
                report = ApplyReport()
            else:
                report = await self.apply(task_set)

            # Containers created this cycle already carry their fingerprint, so a
            # failed detach, attach or start would otherwise never be planned again
            if not report.success and diff.create_containers:
                self.request_renew(containers=diff.create_containers)

            self.last_reconciliation = datetime.now()
            self.last_report = report
            duration = (self.last_reconciliation - start_time).total_seconds()
            if report.success:
                logger.info(f"State reconciliation completed in {duration:.2f}s")
            else:
                logger.error(
                    f"State reconciliation finished with {len(report.failures)} failed tasks "
                    f"in {duration:.2f}s, next cycle will re-plan"
                )
            return report

    async def apply(self, task_set: TaskSet) -> ApplyReport:
        """Apply parallel sets in order, tasks within a set concurrently."""
        report = ApplyReport(stages_total=len(task_set))
        continue_on_error = self.config.agent.continue_on_error

        for index, stage in enumerate(task_set):
            logger.info(
                f"Stage {index + 1}/{len(task_set)}: "
                + ", ".join(task.describe() for task in stage)
            )
            results = await asyncio.gather(
                *(handle_task(self.backend, task) for task in stage),
                return_exceptions=True,
            )

            failed = False
            for task, result in zip(stage, results):
                if isinstance(result, BaseException):
                    if not isinstance(result, Exception):
                        raise result
                    failed = True
                    logger.error(f"Task {task.describe()} failed: {result}")
                    report.failures.append(TaskFailure(stage=index, task=task, error=str(result)))
                else:
                    report.tasks_applied += 1

            report.stages_applied += 1
            if failed and not continue_on_error:
                logger.warning(
                    f"Stopping after stage {index + 1}, "
                    f"{len(task_set) - index - 1} stages skipped"
                )
                break

        return report

    async def get_container_status(
        self,
        name: str,
        info: Optional[HostResourceInfo] = None,
    ) -> Optional[Dict[str, Any]]:
        """Get detailed status for a specific container."""
        plan = self.config_manager.get_container_plan(name)
        if info is None:
            info = await self.observe()
        exists = name in info.container_names
        if not plan and not exists:
            return None

        fingerprint = fingerprint_plan(plan) if plan else None
        observed = info.container_hashes.get(name) if exists else None
        desired = bool(plan and plan.enabled)
        return {
            "name": name,
            "physical_name": self.config.prefix + name,
            "desired": desired,
            "exists": exists,
            "image": plan.image_ref if plan else None,
            "networks": list(plan.networks) if plan else [],
            "fingerprint": fingerprint,
            "observed_fingerprint": observed,
            "in_sync": exists == desired and (not exists or observed == fingerprint),
        }

    async def get_all_container_statuses(self) -> Dict[str, Dict[str, Any]]:
        """Get status for declared and observed containers."""
        info = await self.observe()
        names = filter_duplicates([*self.config_manager.containers, *info.container_names])
        statuses = {}
        for name in names:
            status = await self.get_container_status(name, info)
            if status:
                statuses[name] = status
        return statuses
