# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Scaling orchestrator.

One run is a fixed sequence:

    snapshot baseline -> measurement start -> balance + apply
    -> [wait for nodes] -> measurement stop -> snapshot post-scale
    -> diff new machines -> finalize metrics -> [revert]

Anything that fails before the first machineset update aborts the run.
Once updates have been issued, failures are logged and recorded on the
result and the run carries on, so that measurements still get finalized and
the fleet still gets restored when requested.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fleetscale.balancer import ScalingPlan, balance
from fleetscale.collaborators import (
    FinalizeContext,
    JsonReportFinalizer,
    Measurement,
    MetricsFinalizer,
    NodeLatencyMeasurement,
    NullFinalizer,
    NullMeasurement,
)
from fleetscale.config import FleetScaleConfig
from fleetscale.errors import InventoryQueryError, ReadinessTimeoutError
from fleetscale.inventory import (
    FleetInventory,
    MachineInstance,
    dominant_image,
    new_instances,
)
from fleetscale.kube import KubernetesAPI
from fleetscale.mutator import FleetMutator, MutationReport
from fleetscale.readiness import NodeReadinessPoller

logger = logging.getLogger(__name__)


@dataclass
class OrchestrationResult:
    plan: ScalingPlan = field(default_factory=ScalingPlan)
    new_instances: Dict[str, MachineInstance] = field(default_factory=dict)
    image: str = ""
    apply_report: Optional[MutationReport] = None
    revert_report: Optional[MutationReport] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class ScalingOrchestrator:
    def __init__(
        self,
        inventory: FleetInventory,
        mutator: FleetMutator,
        poller: Optional[NodeReadinessPoller] = None,
        measurement: Optional[Measurement] = None,
        finalizer: Optional[MetricsFinalizer] = None,
        uuid: str = "",
        metadata: Optional[Dict[str, Any]] = None,
        node_ready_interval: float = 1.0,
        max_wait_timeout: float = 3600.0,
    ):
        self.inventory = inventory
        self.mutator = mutator
        self.poller = poller
        self.measurement = measurement or NullMeasurement()
        self.finalizer = finalizer or NullFinalizer()
        self.uuid = uuid
        self.metadata = metadata or {}
        self.node_ready_interval = node_ready_interval
        self.max_wait_timeout = max_wait_timeout

    @classmethod
    def from_config(
        cls, config: FleetScaleConfig, kube_api: KubernetesAPI
    ) -> "ScalingOrchestrator":
        return cls(
            inventory=FleetInventory(kube_api, platform=config.platform),
            mutator=FleetMutator(kube_api, config.max_concurrent_updates),
            poller=NodeReadinessPoller(kube_api) if config.wait_for_nodes else None,
            measurement=NodeLatencyMeasurement(kube_api),
            finalizer=JsonReportFinalizer(config.metrics_directory),
            uuid=config.uuid,
            metadata=config.metadata,
            node_ready_interval=config.node_ready_interval,
            max_wait_timeout=config.max_wait_timeout,
        )

    def _record(self, result: OrchestrationResult, message: str) -> None:
        logger.error(message)
        result.errors.append(message)

    async def run(self, additional_workers: int, gc: bool) -> OrchestrationResult:
        result = OrchestrationResult()

        # Nothing has been mutated yet: let every failure propagate
        pools = await self.inventory.list_pools()
        baseline = await self.inventory.snapshot_instances()
        logger.info(f"Baseline: {len(pools)} machinesets, {len(baseline)} machines")

        await self.measurement.start()

        group = await self.inventory.group_by_replicas(pools)
        plan = balance(group, additional_workers)
        result.plan = plan
        for name, scaling in plan:
            logger.info(
                f"Machineset {name}: {scaling.previous_replicas} -> {scaling.current_replicas}"
            )

        if plan:
            result.apply_report = await self.mutator.apply(plan)
            for error in result.apply_report.errors.values():
                result.errors.append(str(error))
            await self._wait_for_nodes(result)

        try:
            await self.measurement.stop()
        except Exception as e:
            self._record(result, f"Error stopping measurement: {e}")

        try:
            scaled = await self.inventory.snapshot_instances()
        except InventoryQueryError as e:
            self._record(result, f"Error taking post-scale snapshot: {e}")
            scaled = dict(baseline)
        result.new_instances = new_instances(baseline, scaled)
        result.image = dominant_image(result.new_instances.values())
        logger.info(
            f"{len(result.new_instances)} new machines, image {result.image or 'unknown'}"
        )

        ctx = FinalizeContext(
            uuid=self.uuid,
            plan=plan,
            new_instances=result.new_instances,
            image=result.image,
            metadata=self.metadata,
            measurement=self.measurement.summary(),
        )
        try:
            await self.finalizer.finalize(ctx)
        except Exception as e:
            self._record(result, f"Error finalizing metrics: {e}")

        if gc and plan:
            result.revert_report = await self.mutator.revert(plan)
            for error in result.revert_report.errors.values():
                result.errors.append(str(error))

        if result.ok:
            logger.info("Workers scale run completed")
        else:
            logger.error(f"Workers scale run completed with {len(result.errors)} error(s)")
        return result

    async def _wait_for_nodes(self, result: OrchestrationResult) -> None:
        if self.poller is None:
            return
        try:
            await self.poller.wait_ready(self.node_ready_interval, self.max_wait_timeout)
        except (ReadinessTimeoutError, InventoryQueryError) as e:
            self._record(result, f"Error waiting for nodes: {e}")
