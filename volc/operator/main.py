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
import contextlib
import logging
import sys
from typing import Mapping, Optional

import kopf
from prometheus_client import start_http_server
from pythonjsonlogger.json import JsonFormatter

from volc.operator.config import config
from volc.operator.constants import (
    API_GROUP,
    API_VERSION,
    KOPF_STATE_STORE_PREFIX,
    MYSQL_CREATE_ID,
    MYSQL_DELETE_ID,
    MYSQL_UPDATE_ID,
    RESOURCE_MYSQL,
    LogFormat,
)
from volc.operator.coordinator import coordinator
from volc.operator.exceptions import CacheSyncError, ConfigurationError
from volc.operator.kube_auth import login_via_kubernetes_asyncio
from volc.operator.resource import with_essence

logger = logging.getLogger(__name__)

PLAIN_FORMAT = "[%(asctime)s] %(name)-30.30s [%(levelname)-8.8s] %(message)s"
JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


@kopf.on.startup()
async def startup(settings: kopf.OperatorSettings, **_kwargs):
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix=KOPF_STATE_STORE_PREFIX, key="last", v1=False
    )
    settings.persistence.finalizer = f"operator.{API_GROUP}/finalizer"
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix=KOPF_STATE_STORE_PREFIX, v1=False
    )

    # Passed to the Kubernetes API as timeoutSeconds
    settings.watching.server_timeout = 300
    # Total duration of a single watch request
    settings.watching.client_timeout = 300
    settings.watching.connect_timeout = 30
    # Seconds between reconnects of a watch stream
    settings.watching.reconnect_backoff = 1

    if not config.TESTING:
        start_http_server(config.PROMETHEUS_PORT)


@kopf.on.login()
async def login(**kwargs):
    return await login_via_kubernetes_asyncio(**kwargs)


@kopf.on.cleanup()
async def cleanup(**_kwargs):
    coordinator.shutdown()


@kopf.on.event(API_GROUP, API_VERSION, RESOURCE_MYSQL)
async def mysql_event(event: dict, **_kwargs):
    coordinator.observe(event)


@kopf.on.resume(API_GROUP, API_VERSION, RESOURCE_MYSQL, id=MYSQL_CREATE_ID)
@kopf.on.create(API_GROUP, API_VERSION, RESOURCE_MYSQL, id=MYSQL_CREATE_ID)
async def mysql_create(
    body: kopf.Body, logger: logging.Logger, retry: int, **_kwargs
):
    """
    Handles creation of MySQL resources, and resuming them after a restart of
    the operator.
    """
    await coordinator.add(body, logger=logger, retry=retry)


@kopf.on.update(API_GROUP, API_VERSION, RESOURCE_MYSQL, id=MYSQL_UPDATE_ID)
async def mysql_update(
    body: kopf.Body,
    old: Mapping,
    new: Mapping,
    logger: logging.Logger,
    **_kwargs,
):
    await coordinator.update(
        with_essence(body, old), with_essence(body, new), logger=logger
    )


@kopf.on.delete(API_GROUP, API_VERSION, RESOURCE_MYSQL, id=MYSQL_DELETE_ID)
async def mysql_delete(body: kopf.Body, logger: logging.Logger, **_kwargs):
    """
    Handles deletion of MySQL resources.
    """
    await coordinator.delete(body, logger=logger)


def configure_logging() -> None:
    """
    Send all log records to stderr, formatted according to
    :attr:`~volc.operator.config.Config.LOG_FORMAT`.
    """
    handler = logging.StreamHandler()
    if config.LOG_FORMAT == LogFormat.JSON:
        handler.setFormatter(JsonFormatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    root = logging.getLogger()
    root.handlers[:] = [handler]


async def operate(stop_flag: Optional[asyncio.Event] = None) -> None:
    """
    Run the kopf operator and the :class:`WatchCoordinator` side by side.

    When kopf stops, for example on ``SIGTERM``, the coordinator is shut down
    too. When the coordinator fails to sync, kopf is cancelled and
    :class:`~volc.operator.exceptions.CacheSyncError` is raised, also if kopf
    stopped before the caches synced. Setting ``stop_flag`` stops both.
    """
    operator_task = asyncio.create_task(
        kopf.operator(clusterwide=True, standalone=True, stop_flag=stop_flag)
    )
    operator_task.add_done_callback(lambda _: coordinator.shutdown())
    try:
        await coordinator.run()
    except CacheSyncError:
        operator_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await operator_task
        raise
    await operator_task


def run() -> None:
    try:
        config.load()
    except ConfigurationError as e:
        logging.basicConfig()
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)
    configure_logging()

    try:
        asyncio.run(operate())
    except CacheSyncError as e:
        logger.error("%s", e)
        sys.exit(1)
    except Exception:
        logger.exception("The operator terminated unexpectedly.")
        sys.exit(1)
