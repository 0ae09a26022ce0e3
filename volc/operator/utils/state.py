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

from enum import Enum
from typing import List, Optional


class State(str, Enum):
    STATUS_UPDATED = "StatusUpdated"
    SECRET_CREATED = "SecretCreated"
    SERVICE_CREATED = "ServiceCreated"
    WORKLOAD_CREATED = "WorkloadCreated"
    DONE = "Done"
    FAILED = "Failed"

    def __str__(self) -> str:
        return self.value


#: The order in which provisioning states are entered.
PROVISIONING_STATES = [
    State.STATUS_UPDATED,
    State.SECRET_CREATED,
    State.SERVICE_CREATED,
    State.WORKLOAD_CREATED,
    State.DONE,
]


class StateMachine:
    """
    A simple, synchronous state machine implementation. Instantiated with a
    list of states, they are entered in order and can only be stepped through
    forward. Any state can be left towards :attr:`State.FAILED`, which is
    terminal::

        >>> machine = StateMachine([State.STATUS_UPDATED, State.SECRET_CREATED])
        >>> machine.current
        >>> machine.upcoming
        <State.STATUS_UPDATED: 'StatusUpdated'>
        >>> machine.next()
        <State.STATUS_UPDATED: 'StatusUpdated'>
        >>> machine.current
        <State.STATUS_UPDATED: 'StatusUpdated'>
        >>> machine.done
        False
        >>> machine.fail()
        >>> machine.current
        <State.FAILED: 'Failed'>
        >>> machine.done
        True
        >>> machine.next()

    """

    def __init__(self, states: Optional[List[State]] = None) -> None:
        self._pending = list(PROVISIONING_STATES if states is None else states)
        self._entered: List[State] = []
        self._failed = False

    def __repr__(self):
        return (
            f"<{self.__class__.__name__}("
            f"entered={self._entered!r}, pending={self._pending!r}, "
            f"failed={self._failed!r})>"
        )

    @property
    def current(self) -> Optional[State]:
        """
        Return the most recently entered :class:`State`, :attr:`State.FAILED`
        once the machine failed, or ``None`` if no state was entered yet.
        """
        if self._failed:
            return State.FAILED
        try:
            return self._entered[-1]
        except IndexError:
            return None

    @property
    def upcoming(self) -> Optional[State]:
        """
        Return the :class:`State` entered by the next call to :meth:`next`.
        """
        if self._failed or not self._pending:
            return None
        return self._pending[0]

    @property
    def done(self) -> bool:
        """
        Return ``True`` if there are no states left or the machine failed.
        """
        return self._failed or len(self._pending) == 0

    @property
    def entered(self) -> List[State]:
        return list(self._entered)

    def next(self) -> Optional[State]:
        """
        Enter the upcoming :class:`State` and return it. If the machine is
        done, return ``None``.
        """
        if self.done:
            return None
        state = self._pending.pop(0)
        self._entered.append(state)
        return state

    def fail(self) -> None:
        """
        Move the machine into the terminal :attr:`State.FAILED` state.
        """
        self._failed = True
