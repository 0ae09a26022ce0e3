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


class ConfigurationError(ValueError):
    """
    Raised when the operator configuration is invalid.
    """


class CacheSyncError(RuntimeError):
    """
    Raised when the watch cache did not synchronize before the sync timeout
    expired or the operator was shut down.
    """


class InvalidResourceError(TypeError):
    """
    Raised when a watch notification does not carry a usable ``MySQL``
    resource.
    """


class ResourceConflictError(Exception):
    """
    Raised when a dependent resource already exists but is not managed for
    the ``MySQL`` resource currently being provisioned.
    """

    def __init__(self, kind: str, namespace: str, name: str, owner: str):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.owner = owner
        super().__init__(
            f"{kind} '{namespace}/{name}' already exists and belongs to "
            f"'{owner}'."
        )
