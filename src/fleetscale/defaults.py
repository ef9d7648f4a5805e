# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import os


# Source of truth for fleet scaling defaults
class FleetScaleDefaults:
    platform = os.environ.get("FLEETSCALE_PLATFORM", "auto")
    machine_namespace = os.environ.get(
        "FLEETSCALE_MACHINE_NAMESPACE", "openshift-machine-api"
    )
    metrics_directory = os.environ.get(
        "FLEETSCALE_METRICS_DIRECTORY", "collected-metrics"
    )
    additional_worker_nodes = 3
    gc = True
    wait_for_nodes = True
    node_ready_interval = 1.0  # in seconds
    max_wait_timeout = 4 * 60 * 60.0  # in seconds
    wait_nodes_timeout = 10 * 60.0  # standalone wait-nodes command, in seconds
    max_concurrent_updates = 10


class RetryDefaults:
    # Short sleeps first, then settle on the last value (~60 minutes overall)
    backoff = [1.0, 2.0, 3.0, 5.0, 10.0, 20.0, 30.0]
    max_attempts = 126
    command_timeout = 120.0  # per command invocation, in seconds


class MachineAPI:
    group = "machine.openshift.io"
    version = "v1beta1"
    machinesets = "machinesets"
    machines = "machines"
    machineset_label = "machine.openshift.io/cluster-api-machineset"
