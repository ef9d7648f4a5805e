# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Entry point for running fleetscale as a module.

Usage:
    python -m fleetscale <command> [options]

Commands:
    workers-scale - Add worker nodes, measure the scale-up, optionally restore
    wait-nodes    - Wait until every node reports Ready
    verify        - Re-run a command with backoff until it succeeds
"""

import sys

from fleetscale.cli import main

if __name__ == "__main__":
    sys.exit(main())
