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

import logging

import pytest
from kubernetes_asyncio.client import ApiException

from volc.operator.constants import MySQLPhase
from volc.operator.prometheus import MYSQL_PHASES
from volc.operator.resource import MySQL
from volc.operator.status import StatusReporter

from .utils import make_mysql, server_error

logger = logging.getLogger(__name__)

pytestmark = pytest.mark.asyncio


async def test_report_replaces_status(kube):
    reporter = StatusReporter(MySQL.from_body(make_mysql()), logger)
    await reporter.report(MySQLPhase.PROVISIONING, "Received In ADD")

    kube.api.replace_namespaced_custom_object_status.assert_awaited_once()
    kwargs = kube.api.replace_namespaced_custom_object_status.call_args.kwargs
    assert kwargs["group"] == "volc.io"
    assert kwargs["version"] == "v1alpha1"
    assert kwargs["plural"] == "mysqls"
    assert kwargs["namespace"] == "default"
    assert kwargs["name"] == "db1"
    assert kwargs["body"]["spec"] == {"version": "8.0"}
    assert kwargs["body"]["status"] == {
        "phase": "Provisioning",
        "message": "Received In ADD",
    }
    assert reporter.status == {"phase": "Provisioning", "message": "Received In ADD"}
    assert MYSQL_PHASES[("default", "db1")] == MySQLPhase.PROVISIONING


async def test_report_keeps_returned_object(kube):
    returned = make_mysql()
    returned["metadata"]["resourceVersion"] = "42"
    returned["status"] = {"phase": "Ready", "message": "Ready"}
    kube.api.replace_namespaced_custom_object_status.side_effect = None
    kube.api.replace_namespaced_custom_object_status.return_value = returned

    reporter = StatusReporter(MySQL.from_body(make_mysql()), logger)
    await reporter.report(MySQLPhase.READY, "Ready")
    await reporter.report(
        MySQLPhase.FAILED, "Failed", orphaned=["Service/b", "Secret/a"]
    )

    body = kube.api.replace_namespaced_custom_object_status.call_args.kwargs["body"]
    assert body["metadata"]["resourceVersion"] == "42"
    assert body["status"] == {
        "phase": "Failed",
        "message": "Failed",
        "orphanedResources": ["Secret/a", "Service/b"],
    }


async def test_report_does_not_modify_resource(kube):
    mysql = MySQL.from_body(make_mysql())
    await StatusReporter(mysql, logger).report(MySQLPhase.READY, "Ready")
    assert "status" not in mysql.body


async def test_report_raises(kube):
    kube.api.replace_namespaced_custom_object_status.side_effect = server_error()
    reporter = StatusReporter(MySQL.from_body(make_mysql()), logger)
    with pytest.raises(ApiException) as exc_info:
        await reporter.report(MySQLPhase.PROVISIONING, "Received In ADD")
    assert exc_info.value.status == 500
    assert kube.api.replace_namespaced_custom_object_status.await_count == 1
    assert ("default", "db1") not in MYSQL_PHASES


async def test_try_report_logs(kube, caplog):
    caplog.set_level(logging.ERROR, logger=__name__)
    kube.api.replace_namespaced_custom_object_status.side_effect = server_error()
    reporter = StatusReporter(MySQL.from_body(make_mysql()), logger)
    assert await reporter.try_report(MySQLPhase.FAILED, "Failed") is False
    assert any(
        m.startswith("Failed to update status of 'default/db1' to phase=Failed")
        for m in caplog.messages
    )
