# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List

from fleetscale.errors import InventoryQueryError, ReadinessTimeoutError
from fleetscale.kube import API_ERRORS, KubernetesAPI
from fleetscale.retry import RetryPolicy, RetryResult, run_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeRecord:
    name: str
    ready: bool


def is_node_ready(node: Any) -> bool:
    """True if the node has a Ready condition with status "True"."""
    conditions = (node.status.conditions if node.status else None) or []
    return any(c.type == "Ready" and c.status == "True" for c in conditions)


class NodeReadinessPoller:
    def __init__(
        self,
        kube_api: KubernetesAPI,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.kube_api = kube_api
        self._sleep = sleep
        self._clock = clock
        self._not_ready: List[str] = []

    async def list_nodes(self) -> List[NodeRecord]:
        try:
            nodes = await self.kube_api.list_nodes()
        except API_ERRORS as e:
            raise InventoryQueryError(f"error listing nodes: {e}") from e
        return [NodeRecord(name=n.metadata.name, ready=is_node_ready(n)) for n in nodes]

    async def node_count(self) -> int:
        return len(await self.list_nodes())

    async def _all_ready(self) -> bool:
        records = await self.list_nodes()
        self._not_ready = [r.name for r in records if not r.ready]
        for name in self._not_ready:
            logger.debug(f"Node {name} is not ready")
        return not self._not_ready

    async def wait_ready(self, interval: float, timeout: float) -> RetryResult:
        """
        Block until every node reports Ready.

        Checks immediately, then every ``interval`` seconds. Raises
        ReadinessTimeoutError once ``timeout`` elapses and InventoryQueryError
        as soon as listing nodes fails.
        """
        logger.info(f"Waiting up to {timeout:g}s for all nodes to be ready")
        result = await run_with_retry(
            self._all_ready,
            RetryPolicy.fixed(interval, timeout=timeout),
            what="node readiness",
            sleep=self._sleep,
            clock=self._clock,
        )
        if not result.ok:
            raise ReadinessTimeoutError(timeout, self._not_ready)
        logger.info(f"All nodes are ready ({result.elapsed:.1f}s)")
        return result
