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

import base64
import functools
from typing import Callable

import bitmath


def encode_decode_wrapper(fn: Callable[[bytes], bytes], s: str) -> str:
    """
    Encode ``s`` to bytes, call ``fn`` with that and decode the result again.

    The function uses UTF-8 for encoding and decoding.
    """
    if s is None:
        return None
    return fn(s.encode("utf-8")).decode("utf-8")


b64decode = functools.partial(encode_decode_wrapper, base64.b64decode)
b64encode = functools.partial(encode_decode_wrapper, base64.b64encode)


def format_bitmath(value: bitmath.Byte) -> str:
    """
    Format a :class:`bitmath.Byte` such that it is safe to use with Kubernetes.

    The "best" unit is picked and the trailing ``B`` dropped, e.g.
    ``bitmath.GiB(1)`` becomes ``"1Gi"`` and ``bitmath.GiB(0.5)`` ``"512Mi"``.
    """
    # Kubernetes quantities must not contain a decimal point when the value is
    # integral: "1Gi" is fine, "1.0Gi" is not.
    best = value.best_prefix()
    amount = int(best.value) if float(best.value).is_integer() else best.value
    return f"{amount}{best.unit}"[:-1]


def format_resource(kind: str, namespace: str, name: str) -> str:
    """
    Return a human-readable reference to a namespaced Kubernetes object, e.g.
    ``"Secret default/mysql-password-db1"``.
    """
    return f"{kind} {namespace}/{name}"
