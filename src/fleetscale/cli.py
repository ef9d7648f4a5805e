# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import argparse
import asyncio
import logging
import sys

from fleetscale.config import FleetScaleConfig, RetryPolicyConfig
from fleetscale.defaults import FleetScaleDefaults, RetryDefaults
from fleetscale.errors import ConfigurationError, FleetScaleError
from fleetscale.kube import KubernetesAPI
from fleetscale.orchestrator import ScalingOrchestrator
from fleetscale.readiness import NodeReadinessPoller
from fleetscale.retry import command_check, retry_or_raise
from fleetscale.utils import setup_logging

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fleetscale",
        description="Scale OpenShift worker machinesets for benchmarking",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'workers-scale' command
    scale_parser = subparsers.add_parser(
        "workers-scale",
        help="Add worker nodes, measure the scale-up and optionally restore",
    )
    _add_scale_args(scale_parser)

    # 'wait-nodes' command
    wait_parser = subparsers.add_parser(
        "wait-nodes", help="Wait until every node reports Ready"
    )
    wait_parser.add_argument(
        "--interval",
        type=float,
        default=FleetScaleDefaults.node_ready_interval,
        help="Seconds between checks",
    )
    wait_parser.add_argument(
        "--timeout",
        type=float,
        default=FleetScaleDefaults.wait_nodes_timeout,
        help="Seconds to wait in total",
    )

    # 'verify' command
    # Defaults are None so unset flags fall back to the config's retry section
    verify_parser = subparsers.add_parser(
        "verify", help="Re-run a command with backoff until it exits 0"
    )
    verify_parser.add_argument(
        "--config", type=str, help="YAML/JSON file or inline JSON with a retry section"
    )
    verify_parser.add_argument(
        "--max-attempts",
        type=int,
        help=f"Maximum number of attempts (default {RetryDefaults.max_attempts})",
    )
    verify_parser.add_argument(
        "--backoff",
        type=float,
        nargs="+",
        help="Sleep durations between attempts; the last one is reused",
    )
    verify_parser.add_argument(
        "--command-timeout",
        type=float,
        help="Timeout for a single command invocation in seconds",
    )
    verify_parser.add_argument(
        "check_command",
        nargs=argparse.REMAINDER,
        help="Command to run, after '--'",
    )

    return parser


def _add_scale_args(parser: argparse.ArgumentParser) -> None:
    # Defaults are None so unset flags fall back to --config / FleetScaleConfig
    parser.add_argument("--config", type=str, help="YAML/JSON file or inline JSON")
    parser.add_argument(
        "--additional-worker-nodes",
        type=int,
        help="Number of worker nodes to add across machinesets",
    )
    parser.add_argument(
        "--gc",
        action=argparse.BooleanOptionalAction,
        help="Restore machinesets to their previous replica count afterwards",
    )
    parser.add_argument("--uuid", type=str, help="Benchmark run UUID")
    parser.add_argument("--metrics-directory", type=str)
    parser.add_argument("--machine-namespace", type=str)
    parser.add_argument("--platform", choices=["aws", "gcp", "azure", "auto"])
    parser.add_argument(
        "--wait-for-nodes",
        action=argparse.BooleanOptionalAction,
        help="Wait for all nodes to be ready after scaling",
    )
    parser.add_argument(
        "--max-wait-timeout", type=float, help="Node readiness timeout in seconds"
    )
    parser.add_argument(
        "--node-ready-interval", type=float, help="Seconds between readiness checks"
    )


def _scale_overrides(args: argparse.Namespace) -> dict:
    return {
        "additional_worker_nodes": args.additional_worker_nodes,
        "gc": args.gc,
        "uuid": args.uuid,
        "metrics_directory": args.metrics_directory,
        "machine_namespace": args.machine_namespace,
        "platform": args.platform,
        "wait_for_nodes": args.wait_for_nodes,
        "max_wait_timeout": args.max_wait_timeout,
        "node_ready_interval": args.node_ready_interval,
    }


def _verify_retry_config(args: argparse.Namespace) -> RetryPolicyConfig:
    """Retry section of --config (or the defaults), with explicit flags on top."""
    base = FleetScaleConfig.from_config_arg(args.config).retry
    overrides = {
        "backoff": args.backoff,
        "max_attempts": args.max_attempts,
        "command_timeout": args.command_timeout,
    }
    return RetryPolicyConfig(
        **{
            **base.model_dump(),
            **{k: v for k, v in overrides.items() if v is not None},
        }
    )


async def cmd_workers_scale_async(args: argparse.Namespace) -> int:
    try:
        config = FleetScaleConfig.from_config_arg(args.config, _scale_overrides(args))
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    logger.info(
        f"Starting workers-scale run {config.uuid}: "
        f"{config.additional_worker_nodes} additional workers, gc={config.gc}"
    )
    try:
        async with KubernetesAPI(config.machine_namespace) as kube_api:
            orchestrator = ScalingOrchestrator.from_config(config, kube_api)
            result = await orchestrator.run(config.additional_worker_nodes, config.gc)
    except FleetScaleError as e:
        logger.error(f"Workers scale aborted: {e}")
        return 1
    finally:
        logger.info(f"Exiting workers-scale run {config.uuid}")

    return 0 if result.ok else 1


async def cmd_wait_nodes_async(args: argparse.Namespace) -> int:
    try:
        async with KubernetesAPI() as kube_api:
            poller = NodeReadinessPoller(kube_api)
            await poller.wait_ready(args.interval, args.timeout)
    except FleetScaleError as e:
        logger.error(str(e))
        return 1
    return 0


async def cmd_verify_async(args: argparse.Namespace) -> int:
    argv = list(args.check_command)
    if argv and argv[0] == "--":
        argv = argv[1:]
    if not argv:
        logger.error("verify needs a command to run, e.g. 'verify -- ssh host ls'")
        return 1

    try:
        retry_config = _verify_retry_config(args)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1
    except ValueError as e:
        logger.error(f"invalid retry settings: {e}")
        return 1

    try:
        result = await retry_or_raise(
            command_check(argv, timeout=retry_config.command_timeout),
            retry_config.to_policy(),
            what=" ".join(argv),
        )
    except FleetScaleError as e:
        logger.error(str(e))
        return 1

    logger.info(f"Command succeeded after {result.attempts} attempt(s)")
    return 0


def main() -> int:
    parser = create_parser()
    args = parser.parse_args()

    setup_logging(verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        return 1

    handlers = {
        "workers-scale": cmd_workers_scale_async,
        "wait-nodes": cmd_wait_nodes_async,
        "verify": cmd_verify_async,
    }

    handler = handlers.get(args.command)
    if handler:
        return asyncio.run(handler(args))

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
