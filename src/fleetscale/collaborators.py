# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Collaborators invoked around a scaling run.

- Measurement: start()/stop() bracket the benchmarked interval
- MetricsFinalizer: finalize(ctx) records the outcome of the run

Both are pluggable; the implementations here are the ones the CLI wires in.
"""

import json
import logging
import math
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from fleetscale.balancer import ScalingPlan
from fleetscale.errors import MeasurementError
from fleetscale.inventory import MachineInstance
from fleetscale.kube import API_ERRORS, KubernetesAPI

logger = logging.getLogger(__name__)


class Measurement(ABC):
    @abstractmethod
    async def start(self) -> None:
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass

    def summary(self) -> Dict[str, Any]:
        return {}


class NullMeasurement(Measurement):
    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass


def _ready_transition(node: Any) -> Optional[datetime]:
    for condition in (node.status.conditions if node.status else None) or []:
        if condition.type == "Ready" and condition.status == "True":
            return condition.last_transition_time
    return None


def _percentile(values: List[float], pct: float) -> float:
    ordered = sorted(values)
    rank = max(math.ceil(pct / 100.0 * len(ordered)) - 1, 0)
    return ordered[rank]


class NodeLatencyMeasurement(Measurement):
    """Time from creation to Ready for every node that joins during the window."""

    def __init__(self, kube_api: KubernetesAPI):
        self.kube_api = kube_api
        self._baseline: Set[str] = set()
        self.started_at: Optional[datetime] = None
        self.stopped_at: Optional[datetime] = None
        self.latencies: Dict[str, Optional[float]] = {}

    async def _list_nodes(self) -> List[Any]:
        try:
            return await self.kube_api.list_nodes()
        except API_ERRORS as e:
            raise MeasurementError(f"error listing nodes: {e}") from e

    async def start(self) -> None:
        nodes = await self._list_nodes()
        self._baseline = {n.metadata.name for n in nodes}
        self.started_at = datetime.now(timezone.utc)
        logger.info(f"Node latency measurement started with {len(self._baseline)} nodes")

    async def stop(self) -> None:
        nodes = await self._list_nodes()
        self.stopped_at = datetime.now(timezone.utc)
        for node in nodes:
            name = node.metadata.name
            if name in self._baseline:
                continue
            ready_at = _ready_transition(node)
            created_at = node.metadata.creation_timestamp
            if ready_at is None or created_at is None:
                self.latencies[name] = None
                continue
            self.latencies[name] = (ready_at - created_at).total_seconds()
        logger.info(f"Node latency measurement stopped: {len(self.latencies)} new nodes")

    def summary(self) -> Dict[str, Any]:
        measured = [v for v in self.latencies.values() if v is not None]
        summary: Dict[str, Any] = {
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "stoppedAt": self.stopped_at.isoformat() if self.stopped_at else None,
            "nodes": {name: latency for name, latency in sorted(self.latencies.items())},
            "notReady": sorted(n for n, v in self.latencies.items() if v is None),
        }
        if measured:
            summary["readyLatencySeconds"] = {
                "avg": sum(measured) / len(measured),
                "p50": _percentile(measured, 50),
                "p99": _percentile(measured, 99),
                "max": max(measured),
            }
        return summary


@dataclass
class FinalizeContext:
    uuid: str
    plan: ScalingPlan
    new_instances: Dict[str, MachineInstance]
    image: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    measurement: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": self.uuid,
            "metadata": self.metadata,
            "requestedWorkers": self.plan.requested,
            "shortfall": self.plan.shortfall,
            "machinesets": self.plan.to_dict(),
            "newMachines": [
                inst.to_dict() for _, inst in sorted(self.new_instances.items())
            ],
            "image": self.image,
            "measurement": self.measurement,
        }


class MetricsFinalizer(ABC):
    @abstractmethod
    async def finalize(self, ctx: FinalizeContext) -> None:
        pass


class NullFinalizer(MetricsFinalizer):
    async def finalize(self, ctx: FinalizeContext) -> None:
        logger.info(
            f"Run {ctx.uuid}: {ctx.plan.total_added} workers added across "
            f"{len(ctx.plan)} machinesets, {len(ctx.new_instances)} new machines, "
            f"image {ctx.image or 'unknown'}"
        )


class JsonReportFinalizer(MetricsFinalizer):
    """Writes <metrics_directory>/<uuid>/workers-scale.json."""

    filename = "workers-scale.json"

    def __init__(self, metrics_directory: str):
        self.metrics_directory = metrics_directory
        self.path: Optional[str] = None

    async def finalize(self, ctx: FinalizeContext) -> None:
        output_dir = os.path.join(self.metrics_directory, ctx.uuid)
        os.makedirs(output_dir, exist_ok=True)
        self.path = os.path.join(output_dir, self.filename)
        with open(self.path, "w") as f:
            json.dump(ctx.to_dict(), f, indent=2, default=str)
        logger.info(f"Wrote workers-scale report to {self.path}")
