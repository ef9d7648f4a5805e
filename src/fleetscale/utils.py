# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import logging


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for the fleetscale tool.

    Args:
        verbose: If True, set log level to DEBUG; otherwise INFO
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # kubernetes_asyncio and aiohttp are chatty at DEBUG
    logging.getLogger("kubernetes_asyncio").setLevel(max(level, logging.INFO))
    logging.getLogger("aiohttp").setLevel(max(level, logging.INFO))
