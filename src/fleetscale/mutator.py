# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from fleetscale.balancer import ScalingPlan
from fleetscale.defaults import FleetScaleDefaults
from fleetscale.errors import MutationError
from fleetscale.kube import API_ERRORS, KubernetesAPI

logger = logging.getLogger(__name__)


@dataclass
class MutationReport:
    direction: str
    updated: Dict[str, int] = field(default_factory=dict)
    errors: Dict[str, MutationError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


class FleetMutator:
    """Applies a ScalingPlan to the machine sets, or reverts it.

    Updates are best effort: every machine set in the plan is attempted even
    when some updates fail. Per-machine-set outcomes flow back through a
    queue; the plan itself is only read.
    """

    def __init__(
        self,
        kube_api: KubernetesAPI,
        max_concurrent_updates: int = FleetScaleDefaults.max_concurrent_updates,
    ):
        self.kube_api = kube_api
        self.max_concurrent_updates = max_concurrent_updates

    async def apply(self, plan: ScalingPlan) -> MutationReport:
        logger.info("Updating machinesets evenly to reach desired count")
        return await self._set_replicas("apply", plan.targets())

    async def revert(self, plan: ScalingPlan) -> MutationReport:
        logger.info("Restoring machinesets to previous state")
        return await self._set_replicas("revert", plan.inverted())

    async def _set_replicas(self, direction: str, targets: Dict[str, int]) -> MutationReport:
        report = MutationReport(direction=direction)
        if not targets:
            logger.info(f"No machinesets to {direction}")
            return report

        outcomes: asyncio.Queue[Tuple[str, int, Optional[MutationError]]] = asyncio.Queue()
        semaphore = asyncio.Semaphore(self.max_concurrent_updates)

        async def update(name: str, replicas: int) -> None:
            async with semaphore:
                try:
                    await self.kube_api.set_machineset_replicas(name, replicas)
                except API_ERRORS as e:
                    reason = getattr(e, "reason", None) or str(e) or type(e).__name__
                    error = MutationError(name, replicas, reason)
                    await outcomes.put((name, replicas, error))
                else:
                    await outcomes.put((name, replicas, None))

        await asyncio.gather(*(update(name, replicas) for name, replicas in targets.items()))

        while not outcomes.empty():
            name, replicas, error = outcomes.get_nowait()
            if error is None:
                logger.info(f"Machineset {name} set to {replicas} replicas")
                report.updated[name] = replicas
            else:
                logger.error(str(error))
                report.errors[name] = error

        if report.errors:
            logger.error(
                f"{len(report.errors)}/{len(targets)} machineset updates failed "
                f"during {direction}: {sorted(report.errors)}"
            )
        return report
