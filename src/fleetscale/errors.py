# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Exception hierarchy for fleet scaling."""


class FleetScaleError(Exception):
    """Base class for all fleet scaling failures."""


class ConfigurationError(FleetScaleError):
    """Invalid or unreadable configuration."""


class InventoryQueryError(FleetScaleError):
    """Listing machine sets, machines or nodes failed."""


class MutationError(FleetScaleError):
    """A replica update for a single machine set failed."""

    def __init__(self, pool: str, replicas: int, reason: str):
        super().__init__(f"failed to set {pool} replicas to {replicas}: {reason}")
        self.pool = pool
        self.replicas = replicas
        self.reason = reason


class ReadinessTimeoutError(FleetScaleError):
    """Nodes did not all report Ready before the deadline."""

    def __init__(self, timeout: float, not_ready: list[str]):
        preview = ", ".join(sorted(not_ready)[:10])
        super().__init__(
            f"timed out after {timeout:g}s waiting for {len(not_ready)} node(s) "
            f"to become ready: {preview}"
        )
        self.timeout = timeout
        self.not_ready = not_ready


class RetryExhaustedError(FleetScaleError):
    """A check never succeeded within its attempt or time budget."""

    def __init__(self, what: str, attempts: int):
        super().__init__(f"{what} did not succeed after {attempts} attempt(s)")
        self.what = what
        self.attempts = attempts


class MeasurementError(FleetScaleError):
    """Starting or stopping a measurement failed."""
