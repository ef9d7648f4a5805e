# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import asyncio

import aiohttp
import pytest

from fleetscale.errors import InventoryQueryError
from fleetscale.inventory import (
    FleetInventory,
    MachineInstance,
    MachinePool,
    dominant_image,
    extract_image,
    machine_to_instance,
    new_instances,
)

pytestmark = [
    pytest.mark.k8s_0,
    pytest.mark.pre_merge,
    pytest.mark.unit,
    pytest.mark.fleet,
]


def _with_provider(provider: dict) -> dict:
    return {"metadata": {"name": "m"}, "spec": {"providerSpec": {"value": provider}}}


class TestExtractImage:
    def test_aws(self, machine_factory):
        assert extract_image(machine_factory("m1", "p", ami="ami-9"), "aws") == "ami-9"

    def test_gcp(self):
        machine = _with_provider({"disks": [{"image": "rhcos-417"}]})
        assert extract_image(machine, "gcp") == "rhcos-417"

    def test_azure_resource_id(self):
        machine = _with_provider({"image": {"resourceID": "/images/rhcos"}})
        assert extract_image(machine, "azure") == "/images/rhcos"

    def test_azure_marketplace(self):
        machine = _with_provider(
            {"image": {"offer": "rh-ocp", "sku": "sku1", "version": "1.0"}}
        )
        assert extract_image(machine, "azure") == "rh-ocp:sku1:1.0"

    def test_auto_tries_each_platform(self):
        machine = _with_provider({"disks": [{"image": "rhcos-417"}]})
        assert extract_image(machine, "auto") == "rhcos-417"

    def test_wrong_platform_yields_empty(self, machine_factory):
        assert extract_image(machine_factory("m1", "p"), "gcp") == ""

    def test_missing_provider_spec(self):
        assert extract_image({"metadata": {"name": "m"}}) == ""


class TestMachineToInstance:
    def test_fields(self, machine_factory):
        inst = machine_to_instance(machine_factory("m1", "worker-a"), "aws")
        assert inst == MachineInstance(
            name="m1",
            pool="worker-a",
            image="ami-0123",
            phase="Running",
            node_name="node-m1",
            created_at="2026-01-01T00:00:00Z",
        )

    def test_provisioning_machine_has_no_node(self):
        inst = machine_to_instance({"metadata": {"name": "m2"}, "status": {}})
        assert inst.node_name == ""
        assert inst.phase == ""


class TestDiff:
    def test_new_instances(self):
        baseline = {"a": MachineInstance("a")}
        current = {"a": MachineInstance("a"), "b": MachineInstance("b")}
        assert list(new_instances(baseline, current)) == ["b"]

    def test_dominant_image_majority(self):
        instances = [
            MachineInstance("m1", image="ami-old"),
            MachineInstance("m2", image="ami-new"),
            MachineInstance("m3", image="ami-new"),
        ]
        assert dominant_image(instances) == "ami-new"

    def test_dominant_image_tie_goes_to_first_name(self):
        instances = [
            MachineInstance("m2", image="ami-b"),
            MachineInstance("m1", image="ami-a"),
        ]
        assert dominant_image(instances) == "ami-a"

    def test_dominant_image_ignores_empty(self):
        instances = [MachineInstance("m1"), MachineInstance("m2", image="ami-x")]
        assert dominant_image(instances) == "ami-x"
        assert dominant_image([]) == ""


class TestFleetInventory:
    @pytest.mark.asyncio
    async def test_list_pools(self, fake_kube):
        pools = await FleetInventory(fake_kube).list_pools()
        assert pools == [MachinePool("worker-a", 2), MachinePool("worker-b", 2)]

    @pytest.mark.asyncio
    async def test_missing_replicas_counts_as_zero(self, fake_kube):
        async def list_machinesets():
            return [{"metadata": {"name": "infra"}, "spec": {}}, {"metadata": {}}]

        fake_kube.list_machinesets = list_machinesets
        pools = await FleetInventory(fake_kube).list_pools()
        assert pools == [MachinePool("infra", 0)]

    @pytest.mark.asyncio
    async def test_group_by_replicas(self, kube_factory):
        kube = kube_factory({"a": 1, "b": 3, "c": 1})
        group = await FleetInventory(kube).group_by_replicas()
        assert group.levels == {1: ["a", "c"], 3: ["b"]}

    @pytest.mark.asyncio
    async def test_snapshot_keyed_by_name(self, fake_kube):
        snapshot = await FleetInventory(fake_kube, platform="aws").snapshot_instances()
        assert len(snapshot) == 4
        assert {inst.pool for inst in snapshot.values()} == {"worker-a", "worker-b"}
        assert all(name == inst.name for name, inst in snapshot.items())

    @pytest.mark.asyncio
    async def test_machineset_list_error(self, fake_kube):
        fake_kube.fail_list_machinesets = True
        with pytest.raises(InventoryQueryError, match="machinesets"):
            await FleetInventory(fake_kube).list_pools()

    @pytest.mark.asyncio
    async def test_transport_error(self, fake_kube):
        async def list_machines():
            raise aiohttp.ClientConnectionError("connection reset")

        fake_kube.list_machines = list_machines
        with pytest.raises(InventoryQueryError, match="machines"):
            await FleetInventory(fake_kube).snapshot_instances()

    @pytest.mark.asyncio
    async def test_request_timeout(self, fake_kube):
        async def list_machinesets():
            raise asyncio.TimeoutError()

        fake_kube.list_machinesets = list_machinesets
        with pytest.raises(InventoryQueryError, match="machinesets"):
            await FleetInventory(fake_kube).list_pools()
