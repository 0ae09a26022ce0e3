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

from datetime import datetime, timezone
from typing import Dict

from prometheus_client import REGISTRY, Counter, Info
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.metrics_core import CounterMetricFamily

from volc.operator import __version__
from volc.operator.constants import OPERATOR_NAME, MySQLPhase
from volc.operator.utils.k8s_api_client import GlobalApiClient
from volc.operator.utils.typing import Identity

i = Info("svc", "Service Info")
i.info(
    {
        "name": OPERATOR_NAME,
        "version": __version__,
        "started": datetime.now(timezone.utc).isoformat(),
    }
)

PROVISIONING_TOTAL = Counter(
    "mysql_operator_provisioning_total",
    "Number of finished provisioning runs by outcome.",
    ["outcome"],
)
ORPHANED_RESOURCES_TOTAL = Counter(
    "mysql_operator_orphaned_resources_total",
    "Number of dependent resources that could not be deleted during "
    "compensation.",
)

MYSQL_PHASES: Dict[Identity, MySQLPhase] = {}


def report_mysql_phase(namespace: str, name: str, phase: MySQLPhase) -> None:
    MYSQL_PHASES[(namespace, name)] = phase


def forget_mysql(namespace: str, name: str) -> None:
    MYSQL_PHASES.pop((namespace, name), None)


class MySQLCollector:
    def collect(self):
        mysql_phase = GaugeMetricFamily(
            "mysql_instances_phase",
            "1 for the current phase of a MySQL instance, 0 otherwise.",
            labels=["exported_namespace", "name", "phase"],
        )
        for (namespace, name), current in sorted(MYSQL_PHASES.items()):
            for phase in MySQLPhase:
                mysql_phase.add_metric(
                    [namespace, name, phase.value], 1 if phase is current else 0
                )
        yield mysql_phase

        k8s_api_sessions = GaugeMetricFamily(
            "mysql_operator_open_k8s_api_sessions",
            "Number of sessions open to the k8s api",
        )
        k8s_api_sessions_created = CounterMetricFamily(
            "mysql_operator_k8s_api_sessions_created",
            "Number of sessions opened to the k8s api",
        )
        k8s_api_sessions_closed = CounterMetricFamily(
            "mysql_operator_k8s_api_sessions_closed",
            "Number of sessions to the k8s api that were closed",
        )
        k8s_api_sessions.add_metric([], GlobalApiClient.open_sessions())
        k8s_api_sessions_created.add_metric([], GlobalApiClient.sessions_created())
        k8s_api_sessions_closed.add_metric([], GlobalApiClient.sessions_closed())
        yield k8s_api_sessions
        yield k8s_api_sessions_created
        yield k8s_api_sessions_closed


REGISTRY.register(MySQLCollector())
