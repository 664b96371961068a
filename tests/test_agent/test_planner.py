"""Tests for task set generation."""

import pytest

from fleetform.agent.planner import compute_diff, generate_task_set
from fleetform.models.config import PlannerConfig
from fleetform.models.container import ContainerPlan
from fleetform.models.state import HostResourceInfo
from fleetform.models.task import TaskKind
from fleetform.utils.fingerprint import fingerprint_plan


def _shape(task_set):
    """Task set as nested lists of (kind, name[, target]) tuples."""
    shaped = []
    for stage in task_set:
        row = []
        for task in stage:
            if task.kind == TaskKind.ATTACH_NETWORK:
                row.append((task.kind.value, task.name, task.target))
            else:
                row.append((task.kind.value, task.name))
        shaped.append(row)
    return shaped


def _stage_of(task_set, kind, name):
    for index, stage in enumerate(task_set):
        for task in stage:
            if task.kind == kind and task.name == name:
                return index
    return None


@pytest.fixture
def desired(web_plan):
    return {"web": web_plan}


@pytest.fixture
def converged(web_plan):
    """Host state after the web plan has been applied."""
    return HostResourceInfo(
        container_names=["web"],
        network_names=["net1"],
        container_hashes={"web": fingerprint_plan(web_plan)},
    )


class TestScenarios:
    """End to end scenarios of the generator."""

    def test_fresh_deploy(self, desired):
        """Nothing on the host: pull, create, detach, attach, start."""
        task_set = generate_task_set(HostResourceInfo(), desired, [], [], "")

        assert _shape(task_set) == [
            [("image.pull", "nginx:latest")],
            [("network.create", "net1"), ("container.create", "web")],
            [("container.detach", "web")],
            [("network.attach", "net1", "web")],
            [("container.start", "web")],
        ]

    def test_create_task_carries_plan(self, desired, web_plan):
        task_set = generate_task_set(HostResourceInfo(), desired, [], [], "")
        create = next(t for t in task_set[1] if t.kind == TaskKind.CREATE_CONTAINER)
        assert create.plan == web_plan

    def test_drift_renews_container(self, desired):
        """A stale fingerprint tears the container down and rebuilds it."""
        info = HostResourceInfo(
            container_names=["web"],
            network_names=["net1"],
            container_hashes={"web": "stale"},
        )

        task_set = generate_task_set(info, desired, [], [], "")

        assert _shape(task_set) == [
            [("image.pull", "nginx:latest")],
            [("container.delete", "web")],
            [("container.create", "web")],
            [("container.detach", "web")],
            [("network.attach", "net1", "web")],
            [("container.start", "web")],
        ]

    def test_missing_fingerprint_label_renews(self, desired):
        info = HostResourceInfo(container_names=["web"], network_names=["net1"], container_hashes={"web": ""})
        task_set = generate_task_set(info, desired, [], [], "")
        assert _stage_of(task_set, TaskKind.DELETE_CONTAINER, "web") is not None

    def test_disable(self, converged, web_plan):
        """A disabled container and its now unused network are removed."""
        disabled = ContainerPlan(**{**web_plan.model_dump(), "enabled": False})

        task_set = generate_task_set(converged, {"web": disabled}, [], [], "")

        assert _shape(task_set) == [
            [("container.delete", "web")],
            [("network.delete", "net1")],
        ]

    def test_disable_keeps_shared_network(self, web_plan):
        api = ContainerPlan(image="api", networks=["net1"])
        info = HostResourceInfo(
            container_names=["web", "api"],
            network_names=["net1"],
            container_hashes={"web": fingerprint_plan(web_plan), "api": fingerprint_plan(api)},
        )
        disabled = ContainerPlan(**{**web_plan.model_dump(), "enabled": False})

        task_set = generate_task_set(info, {"web": disabled, "api": api}, [], [], "")

        assert task_set[0] == [t for t in task_set[0] if t.kind == TaskKind.DELETE_CONTAINER]
        assert _stage_of(task_set, TaskKind.DELETE_NETWORK, "net1") is None
        assert all(t.kind != TaskKind.CREATE_CONTAINER for stage in task_set for t in stage)

    def test_removed_from_map(self, converged):
        task_set = generate_task_set(converged, {}, [], [], "")
        assert _shape(task_set) == [
            [("container.delete", "web")],
            [("network.delete", "net1")],
        ]


class TestConvergence:
    """Idempotence of the generator."""

    def test_converged_host_yields_empty_plan(self, converged, desired):
        assert generate_task_set(converged, desired, [], [], "") == []

    def test_empty_everything(self):
        assert generate_task_set(HostResourceInfo(), {}, [], [], "ff_") == []

    def test_disabled_only_map_on_empty_host(self, web_plan):
        disabled = ContainerPlan(**{**web_plan.model_dump(), "enabled": False})
        assert generate_task_set(HostResourceInfo(), {"web": disabled}) == []


class TestOrdering:
    """Stage ordering guarantees."""

    def test_delete_precedes_create_for_renewed_names(self, web_plan):
        db = ContainerPlan(image="postgres", tag="16", networks=["net1", "backend"])
        desired = {"web": web_plan, "db": db}
        info = HostResourceInfo(
            container_names=["web", "db"],
            network_names=["net1", "backend"],
            container_hashes={"web": "old", "db": fingerprint_plan(db)},
        )

        task_set = generate_task_set(info, desired, ["db"], ["backend"], "ff_")
        diff = compute_diff(info, desired, ["db"], ["backend"])

        for name in set(diff.delete_containers) & set(diff.create_containers):
            deleted = _stage_of(task_set, TaskKind.DELETE_CONTAINER, "ff_" + name)
            created = _stage_of(task_set, TaskKind.CREATE_CONTAINER, "ff_" + name)
            assert deleted < created
        for name in set(diff.delete_networks) & set(diff.create_networks):
            deleted = _stage_of(task_set, TaskKind.DELETE_NETWORK, "ff_" + name)
            created = _stage_of(task_set, TaskKind.CREATE_NETWORK, "ff_" + name)
            assert deleted < created

    def test_each_image_pulled_in_own_stage(self):
        desired = {
            "web": ContainerPlan(image="nginx"),
            "api": ContainerPlan(image="python", tag="3.12"),
            "worker": ContainerPlan(image="python", tag="3.12"),
        }
        task_set = generate_task_set(HostResourceInfo(), desired)

        assert _shape(task_set)[:2] == [
            [("image.pull", "nginx:latest")],
            [("image.pull", "python:3.12")],
        ]

    def test_attach_stage_per_container(self):
        desired = {
            "web": ContainerPlan(image="nginx", networks=["front", "back"]),
            "api": ContainerPlan(image="api", networks=["back"]),
        }
        task_set = generate_task_set(HostResourceInfo(), desired, prefix="p_")
        shaped = _shape(task_set)

        assert [("network.attach", "p_front", "p_web"), ("network.attach", "p_back", "p_web")] in shaped
        assert [("network.attach", "p_back", "p_api")] in shaped
        assert shaped[-1] == [("container.start", "p_web"), ("container.start", "p_api")]

    def test_detach_covers_every_desired_container(self, web_plan):
        """A new container triggers re-attachment of existing ones too."""
        api = ContainerPlan(image="api", networks=["net1"])
        info = HostResourceInfo(
            container_names=["web"],
            network_names=["net1"],
            container_hashes={"web": fingerprint_plan(web_plan)},
        )

        task_set = generate_task_set(info, {"web": web_plan, "api": api})
        detach = next(stage for stage in task_set if stage[0].kind == TaskKind.DETACH_CONTAINER)

        assert [t.name for t in detach] == ["web", "api"]
        assert _shape(task_set)[-1] == [("container.start", "api")]

    def test_no_stage_repeats_a_task(self, web_plan):
        info = HostResourceInfo(
            container_names=["web", "web", "gone"],
            network_names=["net1", "net1"],
            container_hashes={"web": "x", "gone": "y"},
        )
        task_set = generate_task_set(info, {"web": web_plan}, ["web", "gone"], ["net1"])

        for stage in task_set:
            keys = [(t.kind, t.name, getattr(t, "target", None)) for t in stage]
            assert len(keys) == len(set(keys))


class TestRenewals:
    """Forced renewals and duplicates."""

    def test_forced_container_renewal(self, converged, desired):
        task_set = generate_task_set(converged, desired, ["web"], [], "")

        assert _stage_of(task_set, TaskKind.DELETE_CONTAINER, "web") == 1
        assert _stage_of(task_set, TaskKind.CREATE_CONTAINER, "web") == 2
        assert _stage_of(task_set, TaskKind.CREATE_NETWORK, "net1") is None

    def test_forced_network_renewal_reattaches(self, converged, desired):
        task_set = generate_task_set(converged, desired, [], ["net1"], "")

        assert _shape(task_set) == [
            [("network.delete", "net1")],
            [("network.create", "net1")],
            [("container.detach", "web")],
            [("network.attach", "net1", "web")],
        ]

    def test_duplicate_observed_container_is_renewed(self, converged, desired):
        info = converged.model_copy(update={"container_names": ["web", "web"]})

        diff = compute_diff(info, desired)

        assert diff.renew_containers == ["web"]
        assert diff.delete_containers == ["web"]
        assert diff.create_containers == ["web"]

    def test_duplicate_observed_network_is_renewed(self, converged, desired):
        info = converged.model_copy(update={"network_names": ["net1", "net1"]})
        diff = compute_diff(info, desired)
        assert diff.delete_networks == ["net1"]
        assert diff.create_networks == ["net1"]

    def test_renewing_undesired_container_only_deletes(self, converged, desired):
        info = converged.model_copy(update={"container_names": ["web", "old", "old"]})

        diff = compute_diff(info, desired)

        assert "old" in diff.delete_containers
        assert "old" not in diff.create_containers

    def test_renewing_undesired_network_recreates_it(self):
        info = HostResourceInfo(network_names=["old"])

        diff = compute_diff(info, {}, [], ["old"])

        assert diff.delete_networks == ["old"]
        assert diff.create_networks == ["old"]

    def test_caller_lists_not_mutated(self, desired):
        renew_containers = ["web"]
        renew_networks = []
        info = HostResourceInfo(container_names=["web", "web"], network_names=["net1", "net1"])

        generate_task_set(info, desired, renew_containers, renew_networks, "")

        assert renew_containers == ["web"]
        assert renew_networks == []
        assert info.container_names == ["web", "web"]


class TestDiff:
    """Set computation details."""

    def test_images_only_for_created_containers(self, converged, desired):
        api = ContainerPlan(image="api", tag="2")
        diff = compute_diff(converged, {**desired, "api": api})

        assert diff.images == ["api:2"]
        assert diff.create_containers == ["api"]

    def test_networks_deduplicated(self):
        desired = {
            "a": ContainerPlan(image="a", networks=["n1", "n2"]),
            "b": ContainerPlan(image="b", networks=["n2", "n3"]),
        }
        diff = compute_diff(HostResourceInfo(), desired)
        assert diff.networks == ["n1", "n2", "n3"]
        assert diff.create_networks == ["n1", "n2", "n3"]

    def test_fingerprints_reported(self, desired, web_plan):
        diff = compute_diff(HostResourceInfo(), desired)
        assert diff.fingerprints == {"web": fingerprint_plan(web_plan)}
        assert diff.renew_containers == []


class TestPlannerOptions:
    """Batching switches."""

    def test_batch_image_pulls(self):
        desired = {"a": ContainerPlan(image="a"), "b": ContainerPlan(image="b")}
        task_set = generate_task_set(
            HostResourceInfo(), desired, options=PlannerConfig(batch_image_pulls=True)
        )
        assert _shape(task_set)[0] == [("image.pull", "a:latest"), ("image.pull", "b:latest")]

    def test_batch_network_attaches(self):
        desired = {
            "a": ContainerPlan(image="a", networks=["n1"]),
            "b": ContainerPlan(image="b", networks=["n2"]),
        }
        task_set = generate_task_set(
            HostResourceInfo(), desired, options=PlannerConfig(batch_network_attaches=True)
        )
        attach_stages = [s for s in task_set if s[0].kind == TaskKind.ATTACH_NETWORK]
        assert len(attach_stages) == 1
        assert [(t.name, t.target) for t in attach_stages[0]] == [("n1", "a"), ("n2", "b")]

    def test_sequential_by_default(self):
        desired = {
            "a": ContainerPlan(image="a", networks=["n1"]),
            "b": ContainerPlan(image="b", networks=["n2"]),
        }
        task_set = generate_task_set(HostResourceInfo(), desired)
        pull_stages = [s for s in task_set if s[0].kind == TaskKind.PULL_IMAGE]
        attach_stages = [s for s in task_set if s[0].kind == TaskKind.ATTACH_NETWORK]
        assert len(pull_stages) == 2
        assert len(attach_stages) == 2
