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
from typing import ClassVar, List, Optional

from kubernetes_asyncio.client import ApiClient

from volc.operator.config import config


class GlobalApiClient(ApiClient):
    """
    An :class:`~kubernetes_asyncio.client.ApiClient` that limits the number of
    concurrently open sessions to the Kubernetes API to
    :attr:`~volc.operator.config.Config.K8S_API_MAX_SESSIONS` and keeps track
    of them for the metrics endpoint.

    Always use it as an async context manager::

        async with GlobalApiClient() as api_client:
            core = CoreV1Api(api_client)
    """

    _semaphore: ClassVar[Optional[asyncio.Semaphore]] = None

    _open_sessions: ClassVar[List["GlobalApiClient"]] = []
    _sessions_created = 0
    _sessions_closed = 0

    @classmethod
    def _get_semaphore(cls) -> asyncio.Semaphore:
        if cls._semaphore is None:
            cls._semaphore = asyncio.Semaphore(config.K8S_API_MAX_SESSIONS)
        return cls._semaphore

    @classmethod
    def open_sessions(cls) -> int:
        return len(cls._open_sessions)

    @classmethod
    def sessions_created(cls) -> int:
        return cls._sessions_created

    @classmethod
    def sessions_closed(cls) -> int:
        return cls._sessions_closed

    async def __aenter__(self):
        await GlobalApiClient._get_semaphore().acquire()
        GlobalApiClient._open_sessions.append(self)
        GlobalApiClient._sessions_created += 1
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        GlobalApiClient._get_semaphore().release()
        GlobalApiClient._open_sessions.remove(self)
        GlobalApiClient._sessions_closed += 1
        await super().__aexit__(exc_type, exc_value, traceback)
