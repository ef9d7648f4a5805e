# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Root conftest that applies to all tests in the repository.

Behavior:
- Auto-applies hierarchical markers before marker filtering:
  - pre_merge implies post_merge and nightly
  - k8s_0 tests never need a cluster, so they are also marked unit unless
    they already carry a scope marker
- Markers are declared in pyproject.toml (tool.pytest.ini_options.markers).
- Set FLEETSCALE_DISABLE_MARKER_IMPLICATIONS=1 to opt out.
"""

import os
from typing import Sequence

import pytest

SCOPE_MARKERS = {"unit", "integration"}


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(
    session: pytest.Session, config: pytest.Config, items: Sequence[pytest.Item]
) -> None:
    if os.getenv("FLEETSCALE_DISABLE_MARKER_IMPLICATIONS") == "1":
        return

    for item in items:
        marker_names = {m.name for m in item.iter_markers()}

        if "pre_merge" in marker_names:
            for implied in ("post_merge", "nightly"):
                if implied not in marker_names:
                    item.add_marker(implied)
                    marker_names.add(implied)
        elif "post_merge" in marker_names and "nightly" not in marker_names:
            item.add_marker("nightly")

        if "k8s_0" in marker_names and not marker_names & SCOPE_MARKERS:
            item.add_marker("unit")
