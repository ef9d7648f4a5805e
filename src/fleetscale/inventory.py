# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Read-only view of the worker fleet: machine sets and the machines backing them.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from fleetscale.balancer import ReplicaCountGroup
from fleetscale.defaults import MachineAPI
from fleetscale.errors import InventoryQueryError
from fleetscale.kube import API_ERRORS, KubernetesAPI

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MachinePool:
    name: str
    replicas: int


@dataclass(frozen=True)
class MachineInstance:
    name: str
    pool: str = ""
    image: str = ""
    phase: str = ""
    node_name: str = ""
    created_at: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "pool": self.pool,
            "image": self.image,
            "phase": self.phase,
            "nodeName": self.node_name,
            "createdAt": self.created_at,
        }


def _aws_image(provider: Dict[str, Any]) -> str:
    return (provider.get("ami") or {}).get("id") or ""


def _gcp_image(provider: Dict[str, Any]) -> str:
    disks = provider.get("disks") or []
    return (disks[0].get("image") or "") if disks else ""


def _azure_image(provider: Dict[str, Any]) -> str:
    image = provider.get("image") or {}
    if image.get("resourceID"):
        return image["resourceID"]
    parts = [image.get(k) for k in ("offer", "sku", "version")]
    return ":".join(parts) if all(parts) else ""

IMAGE_EXTRACTORS: Dict[str, Callable[[Dict[str, Any]], str]] = {
    "aws": _aws_image,
    "gcp": _gcp_image,
    "azure": _azure_image,
}


def extract_image(machine: Dict[str, Any], platform: str = "auto") -> str:
    """Return the platform image identifier from a machine's providerSpec."""
    provider = (
        ((machine.get("spec") or {}).get("providerSpec") or {}).get("value") or {}
    )
    if platform in IMAGE_EXTRACTORS:
        return IMAGE_EXTRACTORS[platform](provider)
    for extractor in IMAGE_EXTRACTORS.values():
        image = extractor(provider)
        if image:
            return image
    return ""


def machine_to_instance(machine: Dict[str, Any], platform: str = "auto") -> MachineInstance:
    metadata = machine.get("metadata") or {}
    status = machine.get("status") or {}
    labels = metadata.get("labels") or {}
    return MachineInstance(
        name=metadata.get("name", ""),
        pool=labels.get(MachineAPI.machineset_label, ""),
        image=extract_image(machine, platform),
        phase=status.get("phase") or "",
        node_name=(status.get("nodeRef") or {}).get("name") or "",
        created_at=metadata.get("creationTimestamp") or "",
    )


def new_instances(
    baseline: Dict[str, MachineInstance], current: Dict[str, MachineInstance]
) -> Dict[str, MachineInstance]:
    """Instances present in ``current`` but not in ``baseline``."""
    return {name: inst for name, inst in current.items() if name not in baseline}


def dominant_image(instances: Iterable[MachineInstance]) -> str:
    """Most common non-empty image; ties go to the first instance by name."""
    ordered = sorted(instances, key=lambda inst: inst.name)
    counts = Counter(inst.image for inst in ordered if inst.image)
    if not counts:
        return ""
    if len(counts) > 1:
        logger.warning(f"New machines use {len(counts)} different images: {dict(counts)}")
    # Counter preserves first-seen order, so most_common breaks ties by name
    return counts.most_common(1)[0][0]


class FleetInventory:
    """Lists machine sets and machines. Query failures are never retried."""

    def __init__(self, kube_api: KubernetesAPI, platform: str = "auto"):
        self.kube_api = kube_api
        self.platform = platform

    async def list_pools(self) -> List[MachinePool]:
        try:
            machinesets = await self.kube_api.list_machinesets()
        except API_ERRORS as e:
            raise InventoryQueryError(f"error listing machinesets: {e}") from e

        pools = []
        for ms in machinesets:
            name = (ms.get("metadata") or {}).get("name")
            if not name:
                continue
            replicas = (ms.get("spec") or {}).get("replicas") or 0
            pools.append(MachinePool(name=name, replicas=int(replicas)))

        logger.info(
            f"Found {len(pools)} machinesets: "
            + ", ".join(f"{p.name}={p.replicas}" for p in pools)
        )
        return pools

    async def group_by_replicas(
        self, pools: Optional[List[MachinePool]] = None
    ) -> ReplicaCountGroup:
        if pools is None:
            pools = await self.list_pools()
        return ReplicaCountGroup.from_pools((p.name, p.replicas) for p in pools)

    async def snapshot_instances(self) -> Dict[str, MachineInstance]:
        try:
            machines = await self.kube_api.list_machines()
        except API_ERRORS as e:
            raise InventoryQueryError(f"error listing machines: {e}") from e

        instances = {}
        for machine in machines:
            inst = machine_to_instance(machine, self.platform)
            if inst.name:
                instances[inst.name] = inst
        logger.debug(f"Snapshot of {len(instances)} machines")
        return instances
