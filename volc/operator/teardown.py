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

from volc.operator.constants import MySQLPhase
from volc.operator.create import (
    get_secret_name,
    get_service_name,
    get_statefulset_name,
)
from volc.operator.dependents import (
    SecretDependent,
    ServiceDependent,
    StatefulSetDependent,
    delete_dependent,
)
from volc.operator.prometheus import forget_mysql, report_mysql_phase
from volc.operator.resource import MySQL
from volc.operator.utils.kubeapi import KUBE_API_ERRORS, delete_mysql_resource


async def teardown_mysql(mysql: MySQL, logger: logging.Logger) -> None:
    """
    Delete the MySQL resource and everything that was created for it.

    The deletions are attempted in the order MySQL resource, Secret, Service,
    StatefulSet. Objects that no longer exist are skipped. Any other failure
    is logged and the remaining deletions are still attempted; nothing is
    raised to the caller.
    """
    report_mysql_phase(mysql.namespace, mysql.name, MySQLPhase.TERMINATING)
    logger.info("Tearing down '%s/%s'.", mysql.namespace, mysql.name)

    try:
        await delete_mysql_resource(mysql.namespace, mysql.name, logger)
    except KUBE_API_ERRORS as e:
        logger.error(
            "Failed to delete MySQL '%s/%s': %s", mysql.namespace, mysql.name, e
        )

    for dependent in (
        SecretDependent(mysql.namespace, get_secret_name(mysql.name)),
        ServiceDependent(mysql.namespace, get_service_name(mysql.name)),
        StatefulSetDependent(mysql.namespace, get_statefulset_name(mysql.name)),
    ):
        try:
            await delete_dependent(dependent, logger)
        except KUBE_API_ERRORS as e:
            logger.error("Failed to delete %s: %s", dependent, e)
        else:
            logger.info("Deleted %s.", dependent)

    forget_mysql(mysql.namespace, mysql.name)
