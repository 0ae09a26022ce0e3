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

import copy
import logging
from typing import List, Optional

from kubernetes_asyncio.client import CustomObjectsApi

from volc.operator.constants import API_GROUP, API_VERSION, RESOURCE_MYSQL, MySQLPhase
from volc.operator.prometheus import report_mysql_phase
from volc.operator.resource import MySQL
from volc.operator.utils.k8s_api_client import GlobalApiClient
from volc.operator.utils.kubeapi import KUBE_API_ERRORS
from volc.operator.utils.typing import MySQLBody


class StatusReporter:
    """
    Persist the ``status`` of the MySQL resource that triggered a
    notification.

    The reporter works on a copy of that resource. After each successful
    update the copy is replaced by the object returned from the API, so that
    subsequent updates are sent with the latest ``resourceVersion``.
    """

    def __init__(self, mysql: MySQL, logger: logging.Logger) -> None:
        self._body: MySQLBody = mysql.body
        self._logger = logger

    @property
    def namespace(self) -> str:
        return self._body["metadata"]["namespace"]

    @property
    def name(self) -> str:
        return self._body["metadata"]["name"]

    @property
    def status(self) -> dict:
        return copy.deepcopy(dict(self._body.get("status") or {}))

    async def report(
        self,
        phase: MySQLPhase,
        message: str,
        orphaned: Optional[List[str]] = None,
    ) -> None:
        """
        Set ``status.phase`` and ``status.message`` (and
        ``status.orphanedResources`` if ``orphaned`` is given) and persist them.

        :raises: any of :data:`~volc.operator.utils.kubeapi.KUBE_API_ERRORS`;
            the update is not retried.
        """
        body = copy.deepcopy(self._body)
        status = dict(body.get("status") or {})
        status["phase"] = phase.value
        status["message"] = message
        if orphaned is not None:
            status["orphanedResources"] = sorted(orphaned)
        body["status"] = status  # type: ignore[typeddict-item]

        async with GlobalApiClient() as api_client:
            coapi = CustomObjectsApi(api_client)
            updated = await coapi.replace_namespaced_custom_object_status(
                group=API_GROUP,
                version=API_VERSION,
                plural=RESOURCE_MYSQL,
                namespace=self.namespace,
                name=self.name,
                body=body,
            )
        self._body = updated if isinstance(updated, dict) and updated else body
        report_mysql_phase(self.namespace, self.name, phase)
        self._logger.info(
            "Updated status of '%s/%s' to phase=%s message='%s'.",
            self.namespace,
            self.name,
            phase.value,
            message,
        )

    async def try_report(
        self,
        phase: MySQLPhase,
        message: str,
        orphaned: Optional[List[str]] = None,
    ) -> bool:
        """
        Like :meth:`report`, but log failures instead of raising them. Return
        whether the status was persisted.
        """
        try:
            await self.report(phase, message, orphaned)
        except KUBE_API_ERRORS as e:
            self._logger.error(
                "Failed to update status of '%s/%s' to phase=%s: %s",
                self.namespace,
                self.name,
                phase.value,
                e,
            )
            return False
        return True
