# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Worker fleet scaling for OpenShift benchmarking.

Grows the worker machinesets by a number of additional nodes, spread evenly
across machinesets, brackets the scale-up with a measurement window, detects
the newly created machines and optionally restores the fleet afterwards.
"""

from fleetscale.balancer import PoolScaling, ReplicaCountGroup, ScalingPlan, balance
from fleetscale.config import FleetScaleConfig, RetryPolicyConfig
from fleetscale.inventory import FleetInventory, MachineInstance, MachinePool
from fleetscale.kube import KubernetesAPI
from fleetscale.mutator import FleetMutator, MutationReport
from fleetscale.orchestrator import OrchestrationResult, ScalingOrchestrator
from fleetscale.readiness import NodeReadinessPoller, NodeRecord
from fleetscale.retry import RetryPolicy, RetryResult, run_with_retry

__all__ = [
    "balance",
    "FleetInventory",
    "FleetMutator",
    "FleetScaleConfig",
    "KubernetesAPI",
    "MachineInstance",
    "MachinePool",
    "MutationReport",
    "NodeReadinessPoller",
    "NodeRecord",
    "OrchestrationResult",
    "PoolScaling",
    "ReplicaCountGroup",
    "RetryPolicy",
    "RetryPolicyConfig",
    "RetryResult",
    "run_with_retry",
    "ScalingOrchestrator",
    "ScalingPlan",
]
