# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""In-process fakes for the Kubernetes API handle and the clock."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
from kubernetes_asyncio.client import (
    V1Node,
    V1NodeCondition,
    V1NodeStatus,
    V1ObjectMeta,
    exceptions,
)

from fleetscale.defaults import MachineAPI

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_node(
    name: str, ready: bool = True, ready_after: Optional[float] = None
) -> V1Node:
    created = BASE_TIME
    conditions = [
        V1NodeCondition(
            type="Ready",
            status="True" if ready else "False",
            last_transition_time=created + timedelta(seconds=ready_after or 0),
        )
    ]
    return V1Node(
        metadata=V1ObjectMeta(name=name, creation_timestamp=created),
        status=V1NodeStatus(conditions=conditions),
    )


def make_machine(name: str, pool: str, ami: str = "ami-0123") -> dict:
    return {
        "metadata": {
            "name": name,
            "labels": {MachineAPI.machineset_label: pool},
            "creationTimestamp": "2026-01-01T00:00:00Z",
        },
        "spec": {"providerSpec": {"value": {"ami": {"id": ami}}}},
        "status": {"phase": "Running", "nodeRef": {"name": f"node-{name}"}},
    }


class FakeKubeAPI:
    """Stands in for fleetscale.kube.KubernetesAPI.

    Patching a machineset creates (or removes) machines so that post-scale
    snapshots see new instances, like the machine controller would.
    """

    def __init__(self, replicas: Dict[str, int], ami: str = "ami-0123"):
        self.machine_namespace = "openshift-machine-api"
        self.replicas = dict(replicas)
        self.ami = ami
        self.machines: Dict[str, dict] = {}
        self.nodes: List[V1Node] = []
        self.patch_calls: List[tuple] = []
        self.fail_list_machinesets = False
        self.fail_list_machines = False
        self.fail_list_machines_after = None
        self.fail_patch: set = set()
        self._machine_lists = 0
        self._counter = 0
        for pool, count in self.replicas.items():
            for _ in range(count):
                self._add_machine(pool)

    def _add_machine(self, pool: str) -> None:
        self._counter += 1
        name = f"{pool}-{self._counter}"
        self.machines[name] = make_machine(name, pool, self.ami)

    def _remove_machine(self, pool: str) -> None:
        for name in sorted(self.machines, reverse=True):
            if self.machines[name]["metadata"]["labels"][MachineAPI.machineset_label] == pool:
                del self.machines[name]
                return

    async def list_machinesets(self) -> List[dict]:
        if self.fail_list_machinesets:
            raise exceptions.ApiException(status=500, reason="Internal Server Error")
        return [
            {"metadata": {"name": name}, "spec": {"replicas": count}}
            for name, count in self.replicas.items()
        ]

    async def set_machineset_replicas(self, name: str, replicas: int) -> None:
        self.patch_calls.append((name, replicas))
        if name in self.fail_patch:
            raise exceptions.ApiException(status=409, reason="Conflict")
        current = self.replicas[name]
        for _ in range(replicas - current):
            self._add_machine(name)
        for _ in range(current - replicas):
            self._remove_machine(name)
        self.replicas[name] = replicas

    async def list_machines(self) -> List[dict]:
        self._machine_lists += 1
        if self.fail_list_machines or (
            self.fail_list_machines_after is not None
            and self._machine_lists > self.fail_list_machines_after
        ):
            raise exceptions.ApiException(status=503, reason="Service Unavailable")
        return list(self.machines.values())

    async def list_nodes(self) -> List[V1Node]:
        return list(self.nodes)


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_kube():
    return FakeKubeAPI({"worker-a": 2, "worker-b": 2})


@pytest.fixture
def kube_factory():
    return FakeKubeAPI


@pytest.fixture
def node_factory():
    return make_node


@pytest.fixture
def machine_factory():
    return make_machine
