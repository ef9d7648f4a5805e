# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import logging

import pytest

EXECUTION_CADENCE_MARKERS = [
    "pre_merge: marks tests to run before merging",
    "post_merge: marks tests to run after merge",
    "nightly: marks tests to run nightly",
]

CLUSTER_MARKERS = [
    "k8s: marks tests as requiring a Kubernetes cluster",
    "k8s_0: marks tests that don't require a Kubernetes cluster",
]

TEST_SCOPE_MARKERS = [
    "integration: marks tests as integration tests",
    "unit: marks tests as unit tests",
]

FEATURE_MARKERS = [
    "fleet: marks tests for the fleet scaling core",
    "cli: marks tests for the command line interface",
]


def pytest_configure(config):
    # Keep in sync with [tool.pytest.ini_options].markers in pyproject.toml
    markers = (
        EXECUTION_CADENCE_MARKERS
        + CLUSTER_MARKERS
        + TEST_SCOPE_MARKERS
        + FEATURE_MARKERS
    )
    for marker in markers:
        config.addinivalue_line("markers", marker)


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-k8s",
        action="store_true",
        default=False,
        help="Run tests marked k8s against the cluster in the current kubeconfig",
    )


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-k8s"):
        return
    skip_k8s = pytest.mark.skip(reason="needs --run-k8s and a live cluster")
    for item in items:
        if "k8s" in {m.name for m in item.iter_markers()}:
            item.add_marker(skip_k8s)


LOG_FORMAT = "[TEST] %(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT,
    datefmt=DATE_FORMAT,
)


@pytest.fixture(autouse=True)
def logger(request, tmp_path):
    log_path = tmp_path / "test.log.txt"
    logger = logging.getLogger()
    handler = logging.FileHandler(log_path, mode="w")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    yield
    handler.close()
    logger.removeHandler(handler)
