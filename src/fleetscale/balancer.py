# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Level-filling replica balancer.

Additional workers are spread across machine sets one replica at a time,
always raising the machine sets with the lowest replica count first. After
one balancing pass the spread between touched machine sets is at most one
level, so no single machine set absorbs the whole scale-up.

Example:
    machinesets a=2, b=2 and 3 additional workers
    level 2: a -> 3, b -> 3
    level 3: a -> 4
    plan: a 2 -> 4, b 2 -> 3
"""

import heapq
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class PoolScaling:
    previous_replicas: int
    current_replicas: int

    @property
    def added(self) -> int:
        return self.current_replicas - self.previous_replicas


@dataclass
class ScalingPlan:
    """Target replica counts per machine set, plus what is needed to undo them."""

    requested: int = 0
    pools: Dict[str, PoolScaling] = field(default_factory=dict)
    shortfall: int = 0

    def record_increment(self, pool: str, level: int) -> None:
        # previous_replicas is fixed on first touch
        entry = self.pools.get(pool)
        if entry is None:
            self.pools[pool] = PoolScaling(previous_replicas=level, current_replicas=level + 1)
        else:
            entry.current_replicas = level + 1

    @property
    def total_added(self) -> int:
        return sum(p.added for p in self.pools.values())

    def targets(self) -> Dict[str, int]:
        return {name: p.current_replicas for name, p in self.pools.items()}

    def inverted(self) -> Dict[str, int]:
        return {name: p.previous_replicas for name, p in self.pools.items()}

    def __len__(self) -> int:
        return len(self.pools)

    def __iter__(self) -> Iterator[Tuple[str, PoolScaling]]:
        return iter(self.pools.items())

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {
            name: {
                "previousReplicas": p.previous_replicas,
                "currentReplicas": p.current_replicas,
            }
            for name, p in self.pools.items()
        }


class ReplicaCountGroup:
    """Machine set names grouped by replica count, in listing order per count."""

    def __init__(self, levels: Optional[Dict[int, List[str]]] = None):
        self.levels: Dict[int, List[str]] = {}
        for level, names in (levels or {}).items():
            if names:
                self.levels[level] = list(names)

    @classmethod
    def from_pools(cls, pools: Iterable[Tuple[str, int]]) -> "ReplicaCountGroup":
        group = cls()
        for name, replicas in pools:
            group.levels.setdefault(replicas, []).append(name)
        return group

    def keys(self) -> List[int]:
        return sorted(self.levels)

    def pool_count(self) -> int:
        return sum(len(names) for names in self.levels.values())

    def __getitem__(self, level: int) -> List[str]:
        return self.levels[level]

    def __contains__(self, level: int) -> bool:
        return level in self.levels

    def __repr__(self) -> str:
        return f"ReplicaCountGroup({dict(sorted(self.levels.items()))})"


def balance(group: ReplicaCountGroup, desired_additional: int) -> ScalingPlan:
    """
    Spread ``desired_additional`` replicas across the machine sets in ``group``.

    ``group`` is mutated in place: incremented machine sets move to the next
    level. Pending levels are visited through a min-heap, so a level created
    by moving machine sets up is always visited right after the current one.
    """
    plan = ScalingPlan(requested=max(desired_additional, 0))
    remaining = desired_additional
    if remaining <= 0:
        logger.info(f"Nothing to balance for {desired_additional} additional workers")
        return plan

    pending = list(group.levels)
    heapq.heapify(pending)
    queued = set(pending)

    while remaining > 0 and pending:
        level = heapq.heappop(pending)
        queued.discard(level)
        names = group.levels.pop(level, [])

        moved = 0
        for name in names:
            if remaining <= 0:
                break
            plan.record_increment(name, level)
            group.levels.setdefault(level + 1, []).append(name)
            if level + 1 not in queued:
                heapq.heappush(pending, level + 1)
                queued.add(level + 1)
            remaining -= 1
            moved += 1

        if moved < len(names):
            group.levels[level] = names[moved:]
        logger.debug(f"Level {level}: incremented {moved} machineset(s), {remaining} left")

    if remaining > 0:
        plan.shortfall = remaining
        logger.warning(
            f"Could only assign {desired_additional - remaining} of "
            f"{desired_additional} additional workers: no machinesets available"
        )

    return plan
