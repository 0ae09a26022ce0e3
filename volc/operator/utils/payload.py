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
from typing import Callable

import wrapt

from volc.operator.exceptions import InvalidResourceError
from volc.operator.resource import MySQL


def typed_notification(event: str) -> Callable:
    """
    The ``@typed_notification()`` decorator for notification handlers.

    It converts every positional argument of the decorated coroutine from a
    raw resource body into a :class:`~volc.operator.resource.MySQL`. If a
    payload is not a usable ``MySQL`` resource, the error is logged through
    the ``logger`` keyword argument and the notification is dropped: the
    decorated coroutine is not called and ``None`` is returned.

    :param event: the name of the notification, used in log messages.
    """

    @wrapt.decorator
    async def _typed(wrapped, instance, args, kwargs):
        logger: logging.Logger = kwargs["logger"]
        resources = []
        for payload in args:
            try:
                resources.append(MySQL.from_body(payload))
            except InvalidResourceError as e:
                logger.error("Failed to type assert %s payload: %s", event, e)
                return None
        return await wrapped(*resources, **kwargs)

    return _typed
