# MySQL Kubernetes Operator
#
# Licensed to Crate.IO GmbH ("Crate") under one or more contributor
# license agreements.  See the NOTICE file distributed with this work for
# additional information regarding copyright ownership.  Crate licenses
# this file to you under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.  You may
# obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS, WITHOUT
# WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.  See the
# License for the specific language governing permissions and limitations
# under the License.
#
# However, if you have executed another commercial license agreement
# with Crate these terms will supersede the license and you may use the
# software solely pursuant to the terms of the relevant commercial agreement.

import asyncio
import logging
from typing import Any, Dict, List, Optional
from unittest import mock

from kubernetes_asyncio.client import ApiException, CoreV1Api, CustomObjectsApi

from volc.operator.constants import API_GROUP, API_VERSION, KIND_MYSQL, RESOURCE_MYSQL

logger = logging.getLogger(__name__)

MYSQL_VERSION = "8.0"
DEFAULT_TIMEOUT = 60

#: Modules that talk to the Kubernetes API, and the API classes they use.
API_MODULES = {
    "volc.operator.dependents": ("CoreV1Api", "AppsV1Api"),
    "volc.operator.status": ("CustomObjectsApi",),
    "volc.operator.utils.kubeapi": ("CustomObjectsApi",),
}


async def assert_wait_for(
    condition, coro_func, *args, err_msg="", timeout=DEFAULT_TIMEOUT, delay=2, **kwargs
):
    ret_val = await coro_func(*args, **kwargs)
    duration = 0.0
    while ret_val is not condition:
        await asyncio.sleep(delay)
        ret_val = await coro_func(*args, **kwargs)
        if ret_val is not condition and duration > timeout:
            break
        else:
            duration += delay
    assert ret_val is condition, err_msg


async def does_namespace_exist(core: CoreV1Api, namespace: str) -> bool:
    namespaces = await core.list_namespace()
    return namespace in (ns.metadata.name for ns in namespaces.items)


async def does_secret_exist(core: CoreV1Api, namespace: str, name: str) -> bool:
    secrets = await core.list_namespaced_secret(namespace=namespace)
    return name in (s.metadata.name for s in secrets.items)


async def does_service_exist(core: CoreV1Api, namespace: str, name: str) -> bool:
    services = await core.list_namespaced_service(namespace=namespace)
    return name in (s.metadata.name for s in services.items)


async def get_mysql_message(
    coapi: CustomObjectsApi, namespace: str, name: str
) -> Optional[str]:
    mysql = await coapi.get_namespaced_custom_object(
        group=API_GROUP,
        version=API_VERSION,
        plural=RESOURCE_MYSQL,
        namespace=namespace,
        name=name,
    )
    return (mysql.get("status") or {}).get("message")


def make_mysql(
    namespace: str = "default",
    name: str = "db1",
    version: Optional[Any] = MYSQL_VERSION,
    uid: Optional[str] = "4b1c0c1e-8d4e-4d59-9a3e-9a1d2f2c4a11",
    labels: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {"namespace": namespace, "name": name}
    if uid is not None:
        metadata["uid"] = uid
    if labels is not None:
        metadata["labels"] = labels
    return {
        "apiVersion": f"{API_GROUP}/{API_VERSION}",
        "kind": KIND_MYSQL,
        "metadata": metadata,
        "spec": {"version": version},
    }


def not_found() -> ApiException:
    return ApiException(status=404, reason="Not Found")


def server_error() -> ApiException:
    return ApiException(status=500, reason="Internal Server Error")


class FakeKubeApi:
    """
    Replace the Kubernetes API clients of the operator with a single
    :class:`~unittest.mock.MagicMock`.

    All API classes share the same mock, so :attr:`calls` lists every API
    call in the order it happened. By default nothing exists in the cluster:
    reads fail with 404, creates and deletes succeed, and status updates
    return the submitted body.
    """

    def __init__(self):
        self.api = mock.MagicMock()
        for kind in ("secret", "service"):
            setattr(
                self.api,
                f"read_namespaced_{kind}",
                mock.AsyncMock(side_effect=not_found()),
            )
            setattr(self.api, f"create_namespaced_{kind}", mock.AsyncMock())
            setattr(self.api, f"delete_namespaced_{kind}", mock.AsyncMock())
        self.api.read_namespaced_stateful_set = mock.AsyncMock(
            side_effect=not_found()
        )
        self.api.create_namespaced_stateful_set = mock.AsyncMock()
        self.api.delete_namespaced_stateful_set = mock.AsyncMock()
        self.api.delete_namespaced_custom_object = mock.AsyncMock()
        self.api.list_cluster_custom_object = mock.AsyncMock(
            return_value={"items": []}
        )
        self.api.replace_namespaced_custom_object_status = mock.AsyncMock(
            side_effect=lambda **kwargs: kwargs["body"]
        )
        self._patches: List[Any] = []

    def __enter__(self) -> "FakeKubeApi":
        for module, classes in API_MODULES.items():
            self._patches.append(mock.patch(f"{module}.GlobalApiClient"))
            self._patches.extend(
                mock.patch(f"{module}.{cls}", return_value=self.api) for cls in classes
            )
        for patcher in self._patches:
            patcher.start()
        return self

    def __exit__(self, *exc_info):
        for patcher in reversed(self._patches):
            patcher.stop()
        self._patches.clear()

    @property
    def calls(self) -> List[str]:
        """
        The names of all API methods called so far, in order.
        """
        return [c[0] for c in self.api.method_calls]

    def calls_to(self, verb: str) -> List[str]:
        return [c for c in self.calls if c.startswith(f"{verb}_")]

    def statuses(self) -> List[Dict[str, Any]]:
        return [
            c.kwargs["body"]["status"]
            for c in self.api.replace_namespaced_custom_object_status.call_args_list
        ]
