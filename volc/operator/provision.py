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
from typing import List, NoReturn, Tuple

import kopf

from volc.operator.config import config
from volc.operator.constants import (
    PASSWORD_LENGTH,
    STATUS_FAILED,
    STATUS_READY,
    STATUS_RECEIVED,
    MySQLPhase,
)
from volc.operator.create import (
    get_headless_service,
    get_labels,
    get_owner_references,
    get_password_secret,
    get_secret_name,
    get_service_name,
    get_statefulset,
    get_statefulset_name,
)
from volc.operator.dependents import (
    Dependent,
    SecretDependent,
    ServiceDependent,
    StatefulSetDependent,
    delete_dependent,
    ensure_dependent,
)
from volc.operator.exceptions import ResourceConflictError
from volc.operator.prometheus import ORPHANED_RESOURCES_TOTAL, PROVISIONING_TOTAL
from volc.operator.resource import MySQL
from volc.operator.status import StatusReporter
from volc.operator.utils.kubeapi import KUBE_API_ERRORS
from volc.operator.utils.secrets import gen_password
from volc.operator.utils.state import State, StateMachine


def get_retry_delay(retry: int) -> int:
    """
    Exponential backoff for provisioning retries, capped at
    :attr:`~volc.operator.config.Config.PROVISION_RETRY_MAX_DELAY`.
    """
    return min(
        config.PROVISION_RETRY_DELAY * 2**retry, config.PROVISION_RETRY_MAX_DELAY
    )


def raise_for_retry(message: str, retry: int) -> NoReturn:
    """
    Ask kopf to retry the handler later, or give up once
    :attr:`~volc.operator.config.Config.PROVISION_RETRIES` is reached.
    """
    if retry >= config.PROVISION_RETRIES:
        raise kopf.PermanentError(f"{message} Giving up after {retry} retries.")
    raise kopf.TemporaryError(message, delay=get_retry_delay(retry))


def get_dependents(mysql: MySQL) -> List[Tuple[State, Dependent]]:
    """
    Build the dependent resources of ``mysql`` in creation order, each paired
    with the provisioning state that is entered once it exists.
    """
    owner_references = get_owner_references(mysql.name, mysql.uid)
    labels = get_labels(mysql.name, mysql.labels)
    password = config.ROOT_PASSWORD or gen_password(PASSWORD_LENGTH)
    return [
        (
            State.SECRET_CREATED,
            SecretDependent(
                mysql.namespace,
                get_secret_name(mysql.name),
                get_password_secret(owner_references, mysql.name, labels, password),
            ),
        ),
        (
            State.SERVICE_CREATED,
            ServiceDependent(
                mysql.namespace,
                get_service_name(mysql.name),
                get_headless_service(owner_references, mysql.name, labels),
            ),
        ),
        (
            State.WORKLOAD_CREATED,
            StatefulSetDependent(
                mysql.namespace,
                get_statefulset_name(mysql.name),
                get_statefulset(
                    owner_references,
                    mysql.namespace,
                    mysql.name,
                    labels,
                    mysql.version,
                ),
            ),
        ),
    ]


async def compensate(created: List[Dependent], logger: logging.Logger) -> List[str]:
    """
    Delete the ``created`` resources in reverse order. Failures are logged and
    do not stop the remaining deletions.

    :return: the references of all resources that could not be deleted.
    """
    orphaned = []
    for dependent in reversed(created):
        try:
            await delete_dependent(dependent, logger)
        except KUBE_API_ERRORS as e:
            logger.error("Failed to roll back %s: %s", dependent, e)
            orphaned.append(dependent.reference)
            ORPHANED_RESOURCES_TOTAL.inc()
        else:
            logger.info("Rolled back %s.", dependent)
    return orphaned


async def provision_mysql(mysql: MySQL, logger: logging.Logger, retry: int = 0):
    """
    Bring the dependent resources of ``mysql`` into existence.

    The status is set to "Received In ADD" first. Then the Secret, the
    Service and the StatefulSet are ensured in this order. Resources that
    already exist and belong to ``mysql`` are adopted, so running this again
    for the same resource is safe.

    When a step fails, the status is set to "Failed" and every resource
    created by this run is deleted again, newest first. Resources that could
    not be deleted are recorded in ``status.orphanedResources``. Afterwards
    kopf is asked to retry with exponential backoff.

    :raises kopf.TemporaryError: if provisioning failed and should be retried.
    :raises kopf.PermanentError: if provisioning failed and the retries are
        exhausted.
    """
    logger.info(
        "Provisioning '%s/%s' with version %s.",
        mysql.namespace,
        mysql.name,
        mysql.version,
    )
    machine = StateMachine()
    reporter = StatusReporter(mysql, logger)

    try:
        await reporter.report(MySQLPhase.PROVISIONING, STATUS_RECEIVED)
    except KUBE_API_ERRORS as e:
        machine.fail()
        PROVISIONING_TOTAL.labels(outcome="failure").inc()
        logger.error(
            "Failed to update status of '%s/%s': %s", mysql.namespace, mysql.name, e
        )
        raise_for_retry("Failed to update status.", retry)
    logger.debug("Entered provisioning state %s.", machine.next())

    dependents = dict(get_dependents(mysql))
    created: List[Dependent] = []
    while machine.upcoming in dependents:
        dependent = dependents[machine.upcoming]
        try:
            if await ensure_dependent(dependent, mysql.name, logger):
                created.append(dependent)
        except (ResourceConflictError, *KUBE_API_ERRORS) as e:
            reached = machine.current
            machine.fail()
            PROVISIONING_TOTAL.labels(outcome="failure").inc()
            logger.error(
                "Failed to create %s after provisioning state %s: %s",
                dependent,
                reached,
                e,
            )
            await reporter.try_report(MySQLPhase.FAILED, STATUS_FAILED)
            orphaned = await compensate(created, logger)
            if orphaned:
                await reporter.try_report(
                    MySQLPhase.FAILED, STATUS_FAILED, orphaned=orphaned
                )
            raise_for_retry(
                f"Failed to create {dependent} after provisioning state {reached}.",
                retry,
            )
        logger.debug("Entered provisioning state %s.", machine.next())

    if not await reporter.try_report(MySQLPhase.READY, STATUS_READY):
        reached = machine.current
        machine.fail()
        PROVISIONING_TOTAL.labels(outcome="failure").inc()
        raise_for_retry(
            f"Failed to update status after provisioning state {reached}.", retry
        )
    logger.debug("Entered provisioning state %s.", machine.next())
    PROVISIONING_TOTAL.labels(outcome="success").inc()
    logger.info("Provisioned '%s/%s'.", mysql.namespace, mysql.name)
