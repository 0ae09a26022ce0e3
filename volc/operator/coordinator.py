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
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from volc.operator.config import config
from volc.operator.exceptions import CacheSyncError
from volc.operator.handlers.handle_create_mysql import create_mysql
from volc.operator.handlers.handle_delete_mysql import delete_mysql
from volc.operator.handlers.handle_update_mysql import update_mysql
from volc.operator.resource import identity_of
from volc.operator.utils.kubeapi import KUBE_API_ERRORS, list_mysql_identities
from volc.operator.utils.typing import Identity

logger = logging.getLogger(__name__)

Lister = Callable[[], Awaitable[Set[Identity]]]


class WatchCoordinator:
    """
    Gate the MySQL notification handlers until the operator has seen every
    MySQL resource in the cluster, and serialize the handlers per resource.

    kopf feeds every raw watch event into :meth:`observe`. :meth:`run`
    repeatedly lists the MySQL resources in the cluster and considers the
    cache synced once all of them have been observed. Until then,
    :meth:`add`, :meth:`update` and :meth:`delete` wait. Notifications that
    arrive after :meth:`shutdown` are dropped.
    """

    def __init__(self) -> None:
        self._observed: Set[Identity] = set()
        self._locks: Dict[Identity, asyncio.Lock] = {}
        self._users: Dict[Identity, int] = {}
        self._synced = asyncio.Event()
        self._stopped = asyncio.Event()

    @property
    def has_synced(self) -> bool:
        return self._synced.is_set()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def observe(self, event: Dict[str, Any]) -> None:
        identity = identity_of(event.get("object"))
        if identity is not None:
            self._observed.add(identity)

    def shutdown(self) -> None:
        if not self._stopped.is_set():
            logger.info("Stop accepting MySQL notifications.")
        self._stopped.set()

    async def wait_for_cache_sync(
        self, lister: Lister = list_mysql_identities, timeout: int = 0
    ) -> bool:
        """
        Wait until every MySQL resource returned by ``lister`` was observed.

        The listing is repeated every
        :attr:`~volc.operator.config.Config.CACHE_SYNC_RETRY_DELAY` seconds.
        Listing errors are logged and retried.

        :param timeout: give up after that many seconds. ``0`` waits until
            :meth:`shutdown` is called.
        :return: ``True`` once synced, ``False`` if the timeout expired or
            the coordinator was shut down first.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout > 0 else None
        while not self._stopped.is_set():
            try:
                existing = await lister()
            except KUBE_API_ERRORS as e:
                logger.warning("Failed to list MySQL resources: %s", e)
            else:
                missing = existing - self._observed
                if not missing:
                    self._synced.set()
                    return True
                logger.debug("Waiting for %d MySQL resources.", len(missing))

            delay: float = config.CACHE_SYNC_RETRY_DELAY
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    return False
                delay = min(delay, remaining)
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        return False

    async def run(
        self, lister: Lister = list_mysql_identities, timeout: Optional[int] = None
    ) -> None:
        """
        Wait for the cache to sync and then until :meth:`shutdown` is called.

        In-flight handlers are neither cancelled nor awaited on shutdown.

        :raises CacheSyncError: if the cache did not sync within ``timeout``
            (defaults to
            :attr:`~volc.operator.config.Config.CACHE_SYNC_TIMEOUT`), or
            :meth:`shutdown` was called before it synced.
        """
        if timeout is None:
            timeout = config.CACHE_SYNC_TIMEOUT
        logger.info("Run controller.")
        logger.info("Wait for MySQL informer caches to sync.")
        if not await self.wait_for_cache_sync(lister, timeout):
            if self._stopped.is_set():
                raise CacheSyncError("Shut down before caches synced.")
            raise CacheSyncError("Failed to wait for caches to sync.")
        logger.info("Caches synced.")
        await self._stopped.wait()
        logger.info("Shut down.")

    async def _wait_until_synced(self) -> bool:
        if self._synced.is_set() or self._stopped.is_set():
            return not self._stopped.is_set()
        synced = asyncio.ensure_future(self._synced.wait())
        stopped = asyncio.ensure_future(self._stopped.wait())
        try:
            await asyncio.wait(
                {synced, stopped}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            synced.cancel()
            stopped.cancel()
        return not self._stopped.is_set()

    @contextlib.asynccontextmanager
    async def _serialized(self, identity: Optional[Identity]):
        """
        Hold the lock of ``identity``. The lock is forgotten once no
        notification for ``identity`` holds it or waits for it.
        """
        if identity is None:
            yield
            return
        lock = self._locks.setdefault(identity, asyncio.Lock())
        self._users[identity] = self._users.get(identity, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[identity] -= 1
            if self._users[identity] == 0:
                del self._users[identity]
                del self._locks[identity]

    async def add(self, body: Any, *, logger: logging.Logger, retry: int = 0):
        if not await self._wait_until_synced():
            logger.info("Dropping ADD notification, shutting down.")
            return
        async with self._serialized(identity_of(body)):
            await create_mysql(body, logger=logger, retry=retry)

    async def update(self, old: Any, new: Any, *, logger: logging.Logger):
        if not await self._wait_until_synced():
            logger.info("Dropping UPDATE notification, shutting down.")
            return
        async with self._serialized(identity_of(new)):
            await update_mysql(old, new, logger=logger)

    async def delete(self, body: Any, *, logger: logging.Logger):
        if not await self._wait_until_synced():
            logger.info("Dropping DELETE notification, shutting down.")
            return
        async with self._serialized(identity_of(body)):
            await delete_mysql(body, logger=logger)


coordinator = WatchCoordinator()
