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

import abc
import logging
from typing import Any, Optional

from kubernetes_asyncio.client import (
    AppsV1Api,
    CoreV1Api,
    V1Secret,
    V1Service,
    V1StatefulSet,
)

from volc.operator.constants import LABEL_MANAGED_BY, LABEL_NAME, OPERATOR_NAME
from volc.operator.exceptions import ResourceConflictError
from volc.operator.utils.formatting import format_resource
from volc.operator.utils.k8s_api_client import GlobalApiClient
from volc.operator.utils.kubeapi import call_kubeapi, read_kubeapi


class Dependent(abc.ABC):
    """
    A namespaced Kubernetes object the operator manages on behalf of a MySQL
    resource.

    ``body`` is only needed to :meth:`create` the object; reading and deleting
    work on ``namespace`` and ``name`` alone.
    """

    kind: str

    def __init__(self, namespace: str, name: str, body: Optional[Any] = None):
        self.namespace = namespace
        self.name = name
        self.body = body

    def __str__(self):
        return format_resource(self.kind, self.namespace, self.name)

    @property
    def reference(self) -> str:
        """
        The ``<Kind>/<name>`` reference used in ``status.orphanedResources``.
        """
        return f"{self.kind}/{self.name}"

    @abc.abstractmethod
    async def read(self, api_client) -> Optional[Any]:
        """
        Return the object or ``None`` if it does not exist.
        """

    @abc.abstractmethod
    async def create(self, api_client) -> None:
        pass

    @abc.abstractmethod
    async def delete(self, api_client, logger: logging.Logger) -> None:
        """
        Delete the object. An absent object is not an error.
        """


class SecretDependent(Dependent):
    kind = "Secret"
    body: Optional[V1Secret]

    async def read(self, api_client):
        core = CoreV1Api(api_client)
        return await read_kubeapi(
            core.read_namespaced_secret, namespace=self.namespace, name=self.name
        )

    async def create(self, api_client):
        core = CoreV1Api(api_client)
        await core.create_namespaced_secret(namespace=self.namespace, body=self.body)

    async def delete(self, api_client, logger):
        core = CoreV1Api(api_client)
        await call_kubeapi(
            core.delete_namespaced_secret,
            logger,
            continue_on_absence=True,
            namespace=self.namespace,
            name=self.name,
        )


class ServiceDependent(Dependent):
    kind = "Service"
    body: Optional[V1Service]

    async def read(self, api_client):
        core = CoreV1Api(api_client)
        return await read_kubeapi(
            core.read_namespaced_service, namespace=self.namespace, name=self.name
        )

    async def create(self, api_client):
        core = CoreV1Api(api_client)
        await core.create_namespaced_service(namespace=self.namespace, body=self.body)

    async def delete(self, api_client, logger):
        core = CoreV1Api(api_client)
        await call_kubeapi(
            core.delete_namespaced_service,
            logger,
            continue_on_absence=True,
            namespace=self.namespace,
            name=self.name,
        )


class StatefulSetDependent(Dependent):
    kind = "StatefulSet"
    body: Optional[V1StatefulSet]

    async def read(self, api_client):
        apps = AppsV1Api(api_client)
        return await read_kubeapi(
            apps.read_namespaced_stateful_set,
            namespace=self.namespace,
            name=self.name,
        )

    async def create(self, api_client):
        apps = AppsV1Api(api_client)
        await apps.create_namespaced_stateful_set(
            namespace=self.namespace, body=self.body
        )

    async def delete(self, api_client, logger):
        apps = AppsV1Api(api_client)
        await call_kubeapi(
            apps.delete_namespaced_stateful_set,
            logger,
            continue_on_absence=True,
            namespace=self.namespace,
            name=self.name,
        )


async def ensure_dependent(
    dependent: Dependent, owner: str, logger: logging.Logger
) -> bool:
    """
    Create ``dependent`` unless it already exists.

    An existing object is adopted if it is labelled as managed by the operator
    for the MySQL resource ``owner``.

    :return: ``True`` if the object was created, ``False`` if it was adopted.
    :raises ResourceConflictError: if the object exists but belongs to someone
        else.
    """
    async with GlobalApiClient() as api_client:
        existing = await dependent.read(api_client)
        if existing is not None:
            labels = (existing.metadata and existing.metadata.labels) or {}
            if (
                labels.get(LABEL_MANAGED_BY) != OPERATOR_NAME
                or labels.get(LABEL_NAME) != owner
            ):
                raise ResourceConflictError(
                    dependent.kind,
                    dependent.namespace,
                    dependent.name,
                    labels.get(LABEL_NAME) or "unknown",
                )
            logger.info("%s already exists. Adopting it.", dependent)
            return False
        await dependent.create(api_client)
    logger.info("Created %s.", dependent)
    return True


async def delete_dependent(dependent: Dependent, logger: logging.Logger) -> None:
    async with GlobalApiClient() as api_client:
        await dependent.delete(api_client, logger)
