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

from volc.operator.resource import MySQL
from volc.operator.utils.payload import typed_notification


@typed_notification("UPDATE")
async def update_mysql(old: MySQL, new: MySQL, *, logger: logging.Logger):
    """
    Log both snapshots of an updated MySQL resource.

    Changes to the resource are not reconciled. In particular, a changed
    ``spec.version`` does not roll the StatefulSet to a new image.
    """
    logger.info(
        "Received update for '%s/%s': old=%s new=%s",
        new.namespace,
        new.name,
        old.body,
        new.body,
    )
    if old.version != new.version:
        logger.info(
            "Version of '%s/%s' changed from %s to %s. This is not acted upon.",
            new.namespace,
            new.name,
            old.version,
            new.version,
        )
