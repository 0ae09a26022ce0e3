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

import copy
from typing import Any, Dict, Mapping, Optional

from volc.operator.constants import KIND_MYSQL, MySQLPhase
from volc.operator.exceptions import InvalidResourceError
from volc.operator.utils.typing import Identity, LabelType, MySQLBody


class MySQL:
    """
    A read-only view on a ``MySQL`` custom resource as delivered by a watch
    notification.

    :meth:`from_body` deep-copies the notification payload and :attr:`body`
    returns a copy again, so the view never changes underneath its users.
    """

    def __init__(self, body: MySQLBody) -> None:
        self._body = body

    def __repr__(self):
        return (
            f"<{self.__class__.__name__}("
            f"namespace={self.namespace!r}, name={self.name!r}, "
            f"version={self.version!r})>"
        )

    @classmethod
    def from_body(cls, body: Any) -> "MySQL":
        """
        Build a :class:`MySQL` from a notification payload.

        :raises InvalidResourceError: if ``body`` is not a ``MySQL`` resource
            with a namespace, a name and a string ``spec.version``.
        """
        if not isinstance(body, Mapping):
            raise InvalidResourceError(
                f"Expected a {KIND_MYSQL} resource, got {type(body).__name__}."
            )
        raw: Dict[str, Any] = copy.deepcopy(dict(body))
        kind = raw.get("kind")
        if kind is not None and kind != KIND_MYSQL:
            raise InvalidResourceError(
                f"Expected a {KIND_MYSQL} resource, got {kind}."
            )
        metadata = raw.get("metadata")
        if not isinstance(metadata, Mapping):
            raise InvalidResourceError("The resource has no metadata.")
        for field in ("namespace", "name"):
            if not isinstance(metadata.get(field), str) or not metadata[field]:
                raise InvalidResourceError(f"The resource has no metadata.{field}.")
        spec = raw.get("spec")
        if not isinstance(spec, Mapping):
            raise InvalidResourceError(
                f"{KIND_MYSQL} '{metadata['namespace']}/{metadata['name']}' "
                "has no spec."
            )
        version = spec.get("version")
        if not isinstance(version, str) or not version:
            raise InvalidResourceError(
                f"{KIND_MYSQL} '{metadata['namespace']}/{metadata['name']}' "
                f"has an invalid spec.version: {version!r}."
            )
        return cls(raw)  # type: ignore[arg-type]

    @property
    def namespace(self) -> str:
        return self._body["metadata"]["namespace"]

    @property
    def name(self) -> str:
        return self._body["metadata"]["name"]

    @property
    def identity(self) -> Identity:
        return self.namespace, self.name

    @property
    def uid(self) -> Optional[str]:
        return self._body["metadata"].get("uid")

    @property
    def labels(self) -> LabelType:
        return dict(self._body["metadata"].get("labels") or {})

    @property
    def version(self) -> str:
        return self._body["spec"]["version"]

    @property
    def message(self) -> Optional[str]:
        return (self._body.get("status") or {}).get("message")

    @property
    def phase(self) -> MySQLPhase:
        value = (self._body.get("status") or {}).get("phase")
        try:
            return MySQLPhase(value)
        except ValueError:
            return MySQLPhase.PENDING

    @property
    def body(self) -> MySQLBody:
        """
        Return a deep copy of the underlying resource.
        """
        return copy.deepcopy(self._body)


def identity_of(body: Any) -> Optional[Identity]:
    """
    Return the ``(namespace, name)`` of a raw resource or ``None`` if the
    payload carries no such metadata.
    """
    metadata = body.get("metadata") if isinstance(body, Mapping) else None
    if not isinstance(metadata, Mapping):
        return None
    namespace, name = metadata.get("namespace"), metadata.get("name")
    if not namespace or not name:
        return None
    return namespace, name


def with_essence(body: Mapping, essence: Optional[Mapping]) -> Dict[str, Any]:
    """
    Rebuild a full resource snapshot from ``body`` and a kopf diff-base
    ``essence``.

    kopf hands ``old`` and ``new`` to update handlers as essences, which only
    carry ``spec`` and parts of ``metadata``. The identifying metadata of
    ``body`` is kept, everything present in ``essence`` takes precedence.
    """
    snapshot: Dict[str, Any] = copy.deepcopy(dict(body))
    essence = copy.deepcopy(dict(essence or {}))
    metadata = dict(snapshot.get("metadata") or {})
    metadata.update(essence.pop("metadata", None) or {})
    snapshot["metadata"] = metadata
    snapshot.update(essence)
    return snapshot
