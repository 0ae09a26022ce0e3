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
from typing import Any, Awaitable, Callable, Optional, Set

import aiohttp
from kubernetes_asyncio.client import ApiException, CustomObjectsApi

from volc.operator.constants import API_GROUP, API_VERSION, RESOURCE_MYSQL
from volc.operator.utils.k8s_api_client import GlobalApiClient
from volc.operator.utils.typing import Identity, K8sModel

#: Errors raised by the Kubernetes API client: HTTP errors returned by the API
#: server as well as transport errors and timeouts.
KUBE_API_ERRORS = (ApiException, aiohttp.ClientError, asyncio.TimeoutError)


def _object_name(body: Any, kwargs: dict) -> str:
    name = kwargs.get("name")
    if name is None:
        name = getattr(getattr(body, "metadata", None), "name", None)
    return name or "<unknown>"


async def call_kubeapi(
    method: Callable[..., Awaitable],
    logger: logging.Logger,
    *,
    continue_on_absence=False,
    continue_on_conflict=False,
    namespace: Optional[str] = None,
    body: Optional[K8sModel] = None,
    **kwargs,
) -> Optional[Any]:
    """
    Await a Kubernetes API method and return its result.

    If the API fails with an HTTP 404 NOT FOUND error and
    ``continue_on_absence`` is set to ``True``, the failure is logged and
    ``None`` returned. The same applies to HTTP 409 CONFLICT errors when
    ``continue_on_conflict`` is ``True``. In all other cases the
    :exc:`~kubernetes_asyncio.client.exceptions.ApiException` is re-raised.

    :param method: A Kubernetes API function which will be called with
        ``namespace`` and ``body``, if provided, and all other ``kwargs``.
    :param logger:
    :param continue_on_absence: When ``True``, log instead of raising on HTTP
        404 responses.
    :param continue_on_conflict: When ``True``, log instead of raising on HTTP
        409 responses.
    :param namespace: The namespace passed to namespaced K8s API endpoints.
    :param body: The body passed to the K8s API endpoints.
    """
    if namespace is not None:
        kwargs["namespace"] = namespace
    if body is not None:
        kwargs["body"] = body
    try:
        return await method(**kwargs)
    except ApiException as e:
        if e.status == 404 and continue_on_absence:
            action, cause = "deleting", "doesn't exist"
        elif e.status == 409 and continue_on_conflict:
            action, cause = "creating", "already exists"
        else:
            raise

        msg = ["Failed", action]
        args = []
        if e.status == 409 and body is not None:
            # For 404 the body is `V1DeleteOptions`; not very helpful.
            msg.append("%s")
            args.append(body.__class__.__name__)
        if namespace:
            msg.append("'%s/%s'")
            args.extend([namespace, _object_name(body, kwargs)])
        msg.append(f"because it {cause}. Continuing.")
        logger.info(" ".join(msg), *args)
        return None


async def read_kubeapi(
    method: Callable[..., Awaitable], *, namespace: str, name: str
) -> Optional[Any]:
    """
    Read the object ``name`` in ``namespace`` using the ``read_namespaced_*``
    API function ``method``. Return ``None`` if the object does not exist.
    """
    try:
        return await method(namespace=namespace, name=name)
    except ApiException as e:
        if e.status == 404:
            return None
        raise


async def list_mysql_identities() -> Set[Identity]:
    """
    Return the ``(namespace, name)`` pairs of all MySQL resources in the
    cluster.
    """
    async with GlobalApiClient() as api_client:
        coapi = CustomObjectsApi(api_client)
        resources = await coapi.list_cluster_custom_object(
            group=API_GROUP, version=API_VERSION, plural=RESOURCE_MYSQL
        )
    return {
        (item["metadata"]["namespace"], item["metadata"]["name"])
        for item in resources.get("items", [])
    }


async def delete_mysql_resource(
    namespace: str, name: str, logger: logging.Logger
) -> None:
    """
    Delete the MySQL resource ``name`` in ``namespace``. An absent resource is
    not an error.
    """
    async with GlobalApiClient() as api_client:
        coapi = CustomObjectsApi(api_client)
        await call_kubeapi(
            coapi.delete_namespaced_custom_object,
            logger,
            continue_on_absence=True,
            namespace=namespace,
            group=API_GROUP,
            version=API_VERSION,
            plural=RESOURCE_MYSQL,
            name=name,
        )
