# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp
from kubernetes_asyncio import client, config
from kubernetes_asyncio.client import exceptions

from fleetscale.defaults import FleetScaleDefaults, MachineAPI
from fleetscale.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Raised by any call through KubernetesAPI: API errors, transport errors and
# aiohttp request timeouts
API_ERRORS = (exceptions.ApiException, aiohttp.ClientError, asyncio.TimeoutError)


class KubernetesAPI:
    """Client handle for the machine API and the core node API.

    Built once per run and passed to every component that talks to the
    cluster. Call ``_async_init`` (or use ``async with``) before use.
    """

    def __init__(
        self,
        machine_namespace: str = FleetScaleDefaults.machine_namespace,
        api_client: Optional[client.ApiClient] = None,
    ):
        self.machine_namespace = machine_namespace
        self._api_client = api_client
        self.custom_api: Optional[client.CustomObjectsApi] = None
        self.core_api: Optional[client.CoreV1Api] = None
        if api_client is not None:
            self._bind(api_client)

    def _bind(self, api_client: client.ApiClient) -> None:
        self.custom_api = client.CustomObjectsApi(api_client)
        self.core_api = client.CoreV1Api(api_client)

    async def _async_init(self) -> None:
        if self._api_client is None:
            try:
                config.load_incluster_config()
                logger.info("Using in-cluster Kubernetes configuration")
            except config.ConfigException:
                try:
                    await config.load_kube_config()
                except (config.ConfigException, OSError) as e:
                    raise ConfigurationError(
                        f"could not load Kubernetes configuration: {e}"
                    ) from e
                logger.info("Using kubeconfig file")
            self._api_client = client.ApiClient()
        self._bind(self._api_client)

    async def close(self) -> None:
        if self._api_client is not None:
            await self._api_client.close()

    async def __aenter__(self) -> "KubernetesAPI":
        await self._async_init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    async def list_machinesets(self) -> List[Dict[str, Any]]:
        assert self.custom_api is not None
        result = await self.custom_api.list_namespaced_custom_object(
            group=MachineAPI.group,
            version=MachineAPI.version,
            namespace=self.machine_namespace,
            plural=MachineAPI.machinesets,
        )
        return result.get("items", [])

    async def set_machineset_replicas(self, name: str, replicas: int) -> None:
        assert self.custom_api is not None
        await self.custom_api.patch_namespaced_custom_object(
            group=MachineAPI.group,
            version=MachineAPI.version,
            namespace=self.machine_namespace,
            plural=MachineAPI.machinesets,
            name=name,
            body={"spec": {"replicas": replicas}},
        )

    async def list_machines(self) -> List[Dict[str, Any]]:
        assert self.custom_api is not None
        result = await self.custom_api.list_namespaced_custom_object(
            group=MachineAPI.group,
            version=MachineAPI.version,
            namespace=self.machine_namespace,
            plural=MachineAPI.machines,
        )
        return result.get("items", [])

    async def list_nodes(self) -> List[client.V1Node]:
        assert self.core_api is not None
        node_list = await self.core_api.list_node()
        return node_list.items or []
