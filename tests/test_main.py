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
from unittest import mock

import kopf
import pytest
from pythonjsonlogger.json import JsonFormatter

from volc.operator import main
from volc.operator.config import config
from volc.operator.constants import LogFormat
from volc.operator.coordinator import WatchCoordinator
from volc.operator.exceptions import CacheSyncError, ConfigurationError

from .utils import make_mysql

logger = logging.getLogger(__name__)


@pytest.fixture
def root_handlers():
    root = logging.getLogger()
    handlers = root.handlers[:]
    yield
    root.handlers[:] = handlers


@pytest.fixture
def coordinator():
    with mock.patch("volc.operator.main.coordinator") as coordinator:
        coordinator.add = mock.AsyncMock()
        coordinator.update = mock.AsyncMock()
        coordinator.delete = mock.AsyncMock()
        coordinator.run = mock.AsyncMock()
        yield coordinator


class TestConfigureLogging:
    def test_plain(self, root_handlers):
        main.configure_logging()
        [handler] = logging.getLogger().handlers
        assert type(handler.formatter) is logging.Formatter

    def test_json(self, root_handlers):
        with mock.patch.object(config, "LOG_FORMAT", LogFormat.JSON):
            main.configure_logging()
        [handler] = logging.getLogger().handlers
        assert isinstance(handler.formatter, JsonFormatter)


@pytest.mark.asyncio
class TestHandlers:
    async def test_startup(self):
        settings = kopf.OperatorSettings()
        with mock.patch("volc.operator.main.start_http_server") as start:
            await main.startup(settings=settings)
        start.assert_not_called()
        assert settings.persistence.finalizer == "operator.volc.io/finalizer"
        assert isinstance(
            settings.persistence.diffbase_storage, kopf.AnnotationsDiffBaseStorage
        )
        assert isinstance(
            settings.persistence.progress_storage, kopf.AnnotationsProgressStorage
        )

    async def test_startup_metrics_server(self):
        with mock.patch.object(config, "TESTING", False), mock.patch(
            "volc.operator.main.start_http_server"
        ) as start:
            await main.startup(settings=kopf.OperatorSettings())
        start.assert_called_once_with(config.PROMETHEUS_PORT)

    async def test_event(self, coordinator):
        event = {"type": "ADDED", "object": make_mysql()}
        await main.mysql_event(event=event)
        coordinator.observe.assert_called_once_with(event)

    async def test_cleanup(self, coordinator):
        await main.cleanup()
        coordinator.shutdown.assert_called_once_with()

    async def test_create(self, coordinator):
        await main.mysql_create(body=make_mysql(), logger=logger, retry=1)
        coordinator.add.assert_awaited_once_with(make_mysql(), logger=logger, retry=1)

    async def test_update(self, coordinator):
        await main.mysql_update(
            body=make_mysql(version="8.4"),
            old={"spec": {"version": "8.0"}},
            new={"spec": {"version": "8.4"}},
            logger=logger,
        )
        coordinator.update.assert_awaited_once_with(
            make_mysql(version="8.0"), make_mysql(version="8.4"), logger=logger
        )

    async def test_delete(self, coordinator):
        await main.mysql_delete(body=make_mysql(), logger=logger)
        coordinator.delete.assert_awaited_once_with(make_mysql(), logger=logger)


@pytest.mark.asyncio
class TestOperate:
    async def test_operator_stops_coordinator(self, coordinator):
        with mock.patch("kopf.operator", new_callable=mock.AsyncMock) as operator:
            await main.operate()
        operator.assert_awaited_once()
        assert operator.call_args.kwargs["clusterwide"] is True
        coordinator.shutdown.assert_called()

    async def test_sync_failure_cancels_operator(self, coordinator):
        cancelled = asyncio.Event()

        async def operator(**kwargs):
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise

        async def run():
            await asyncio.sleep(0.01)
            raise CacheSyncError("no sync")

        coordinator.run.side_effect = run
        with mock.patch("kopf.operator", operator):
            with pytest.raises(CacheSyncError):
                await main.operate()
        assert cancelled.is_set()

    async def test_operator_stops_before_sync(self):
        real = WatchCoordinator()

        async def never_synced():
            return {("default", "db1")}

        async def run():
            await real.run(never_synced, timeout=0)

        async def operator(**kwargs):
            await asyncio.sleep(0.05)

        with mock.patch("volc.operator.main.coordinator") as coordinator, mock.patch(
            "kopf.operator", operator
        ), mock.patch.object(config, "CACHE_SYNC_RETRY_DELAY", 0.01):
            coordinator.run.side_effect = run
            coordinator.shutdown.side_effect = real.shutdown
            with pytest.raises(CacheSyncError):
                await main.operate()
        assert real.stopped


class TestRun:
    def test_configuration_error(self):
        with mock.patch.object(
            config, "load", side_effect=ConfigurationError("bad")
        ), mock.patch("volc.operator.main.logging.basicConfig"):
            with pytest.raises(SystemExit) as exc_info:
                main.run()
        assert exc_info.value.code == 1

    def test_cache_sync_error(self):
        with mock.patch.object(config, "load"), mock.patch(
            "volc.operator.main.configure_logging"
        ), mock.patch(
            "volc.operator.main.operate",
            new_callable=mock.AsyncMock,
            side_effect=CacheSyncError("no sync"),
        ):
            with pytest.raises(SystemExit) as exc_info:
                main.run()
        assert exc_info.value.code == 1

    def test_clean_exit(self):
        with mock.patch.object(config, "load"), mock.patch(
            "volc.operator.main.configure_logging"
        ), mock.patch("volc.operator.main.operate", new_callable=mock.AsyncMock):
            main.run()
