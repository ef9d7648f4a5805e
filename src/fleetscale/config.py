# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from fleetscale.defaults import FleetScaleDefaults, RetryDefaults
from fleetscale.errors import ConfigurationError
from fleetscale.retry import RetryPolicy

logger = logging.getLogger(__name__)


class RetryPolicyConfig(BaseModel):
    """Backoff schedule used when verifying eventually-consistent remote state."""

    backoff: List[float] = Field(default_factory=lambda: list(RetryDefaults.backoff))
    max_attempts: int = RetryDefaults.max_attempts
    command_timeout: float = RetryDefaults.command_timeout

    @model_validator(mode="after")
    def _validate_policy(self) -> "RetryPolicyConfig":
        if not self.backoff:
            raise ValueError("backoff must contain at least one duration")
        if any(d < 0 for d in self.backoff):
            raise ValueError(f"backoff durations must be >= 0, got {self.backoff}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.command_timeout <= 0:
            raise ValueError("command_timeout must be positive")
        return self

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(backoff=tuple(self.backoff), max_attempts=self.max_attempts)


class FleetScaleConfig(BaseModel):
    """Pydantic configuration for a workers-scale run.

    Every field can be given in a YAML/JSON file passed with ``--config``;
    explicit CLI flags take precedence over file values.
    """

    uuid: str = Field(default_factory=lambda: str(uuid.uuid4()))
    additional_worker_nodes: int = FleetScaleDefaults.additional_worker_nodes
    gc: bool = FleetScaleDefaults.gc

    platform: Literal["aws", "gcp", "azure", "auto"] = FleetScaleDefaults.platform
    machine_namespace: str = FleetScaleDefaults.machine_namespace

    wait_for_nodes: bool = FleetScaleDefaults.wait_for_nodes
    node_ready_interval: float = FleetScaleDefaults.node_ready_interval
    max_wait_timeout: float = FleetScaleDefaults.max_wait_timeout
    max_concurrent_updates: int = FleetScaleDefaults.max_concurrent_updates

    metrics_directory: str = FleetScaleDefaults.metrics_directory
    metadata: Dict[str, Any] = Field(default_factory=dict)

    retry: RetryPolicyConfig = Field(default_factory=RetryPolicyConfig)

    @model_validator(mode="after")
    def _validate_config(self) -> "FleetScaleConfig":
        if self.node_ready_interval <= 0:
            raise ValueError(
                f"node_ready_interval must be positive, got {self.node_ready_interval}"
            )
        if self.max_wait_timeout <= 0:
            raise ValueError(
                f"max_wait_timeout must be positive, got {self.max_wait_timeout}"
            )
        if self.node_ready_interval > self.max_wait_timeout:
            raise ValueError(
                f"node_ready_interval ({self.node_ready_interval}s) must not exceed "
                f"max_wait_timeout ({self.max_wait_timeout}s)"
            )
        if self.max_concurrent_updates < 1:
            raise ValueError(
                f"max_concurrent_updates must be >= 1, got {self.max_concurrent_updates}"
            )
        if self.additional_worker_nodes < 0:
            logger.warning(
                "additional_worker_nodes=%d is negative; the run will not scale",
                self.additional_worker_nodes,
            )
        return self

    @classmethod
    def from_config_arg(
        cls, config_arg: Optional[str], overrides: Optional[Dict[str, Any]] = None
    ) -> "FleetScaleConfig":
        """Create a FleetScaleConfig from a CLI --config argument.

        Auto-detects whether the argument is a file path (JSON/YAML) or an
        inline JSON string. ``overrides`` are applied on top, skipping None
        values so unset CLI flags keep the file or default value.
        """
        data: Dict[str, Any] = {}
        if config_arg:
            path = Path(config_arg)
            if path.is_file():
                data = cls._load_file(path)
            else:
                try:
                    data = json.loads(config_arg)
                except json.JSONDecodeError as e:
                    raise ConfigurationError(
                        f"--config value is neither a valid file path nor valid JSON: {e}"
                    ) from e
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"configuration must be a mapping, got {type(data).__name__}"
                )

        for key, value in (overrides or {}).items():
            if value is not None:
                data[key] = value

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"invalid configuration: {e}") from e

    @staticmethod
    def _load_file(path: Path) -> Any:
        text = path.read_text()
        try:
            if path.suffix.lower() == ".json":
                return json.loads(text)
            # YAML is a superset of JSON
            return yaml.safe_load(text) or {}
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"could not parse config file '{path}': {e}") from e
