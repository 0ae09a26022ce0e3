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
import os
from typing import Optional

import bitmath
from kubernetes_asyncio.config.kube_config import ENV_KUBECONFIG_PATH_SEPARATOR

from volc.operator.constants import LogFormat
from volc.operator.exceptions import ConfigurationError

UNDEFINED = object()


class Config:
    """
    The central configuration hub for the operator.

    To access the config from another module, import
    :data:`volc.operator.config.config` and access its attributes.
    """

    #: Time in seconds the operator waits for the watch cache to observe all
    #: existing MySQL resources. ``0`` waits until the operator shuts down.
    CACHE_SYNC_TIMEOUT: int = 0

    #: Time in seconds between two checks whether the watch cache has synced.
    CACHE_SYNC_RETRY_DELAY: int = 5

    #: The image repository the MySQL version from the resource's
    #: ``spec.version`` is appended to.
    IMAGE_PREFIX: str = "arm64v8/mysql:"

    #: Maximum number of concurrently open sessions to the Kubernetes API.
    K8S_API_MAX_SESSIONS: int = 10

    #: The path the Kubernetes configuration to use.
    KUBECONFIG: Optional[str] = None

    #: The log level to use for all MySQL operator related log messages.
    #: WARNING: Settings this to DEBUG or lower may print sensitive information
    #: (i.e. Kubernetes secrets) into the logs.
    LOG_LEVEL: str = "INFO"

    #: Either ``plain`` or ``json``.
    LOG_FORMAT: LogFormat = LogFormat.PLAIN

    #: The port on which prometheus exposes metrics
    PROMETHEUS_PORT: int = 8080

    #: How often a failed provisioning is retried before it is given up.
    PROVISION_RETRIES: int = 5

    #: Base delay in seconds between provisioning retries. The delay doubles
    #: with every retry up to :attr:`PROVISION_RETRY_MAX_DELAY`.
    PROVISION_RETRY_DELAY: int = 10
    PROVISION_RETRY_MAX_DELAY: int = 300

    #: A static root password for all MySQL instances. When unset, a random
    #: password is generated for each instance.
    ROOT_PASSWORD: Optional[str] = None

    #: Name templates for the dependent resources. ``{name}`` is replaced with
    #: the name of the MySQL resource.
    SECRET_NAME: str = "mysql-password-{name}"
    SERVICE_NAME: str = "mysql-{name}"
    STATEFULSET_NAME: str = "{name}-deployment"

    #: The Kubernetes storage class for the data volume. Uses the cluster
    #: default when unset.
    STORAGE_CLASS: Optional[str] = None

    #: Requested and maximum size of the data volume.
    STORAGE_REQUEST: bitmath.Byte = bitmath.GiB(1)
    STORAGE_LIMIT: bitmath.Byte = bitmath.GiB(2)

    #: Seconds a MySQL pod is given to shut down.
    TERMINATION_GRACE_PERIOD: int = 10

    #: Enable testing behaviors, i.e. do not start the metrics HTTP server.
    TESTING: bool = False

    def __init__(self, *, prefix: str):
        self._prefix = prefix

    def load(self):
        self.CACHE_SYNC_TIMEOUT = self.non_negative_int(
            "CACHE_SYNC_TIMEOUT", self.CACHE_SYNC_TIMEOUT
        )
        self.CACHE_SYNC_RETRY_DELAY = self.positive_int(
            "CACHE_SYNC_RETRY_DELAY", self.CACHE_SYNC_RETRY_DELAY
        )

        self.IMAGE_PREFIX = self.env("IMAGE_PREFIX", default=self.IMAGE_PREFIX)
        if not self.IMAGE_PREFIX:
            raise ConfigurationError(
                f"Invalid {self._prefix}IMAGE_PREFIX=''. Must not be empty."
            )

        self.K8S_API_MAX_SESSIONS = self.positive_int(
            "K8S_API_MAX_SESSIONS", self.K8S_API_MAX_SESSIONS
        )

        self.KUBECONFIG = self.env("KUBECONFIG", default=self.KUBECONFIG)
        if self.KUBECONFIG is not None:
            # When the MYSQL_OPERATOR_KUBECONFIG env var is set we need to
            # ensure that KUBECONFIG env var is set to the same value for
            # the fallback login of the Kopf framework to work correctly.
            os.environ["KUBECONFIG"] = self.KUBECONFIG
        else:
            self.KUBECONFIG = os.getenv("KUBECONFIG")
        if self.KUBECONFIG is not None:
            for path in self.KUBECONFIG.split(ENV_KUBECONFIG_PATH_SEPARATOR):
                if not os.path.exists(path):
                    raise ConfigurationError(
                        "The KUBECONFIG environment variable contains a path "
                        f"'{path}' that does not exist."
                    )

        self.LOG_LEVEL = self.env("LOG_LEVEL", default=self.LOG_LEVEL)
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        if not isinstance(level, int):
            raise ConfigurationError(
                f"Invalid {self._prefix}LOG_LEVEL='{self.LOG_LEVEL}'."
            )
        for logger_name in ("", "volc", "kopf", "kubernetes_asyncio"):
            logger = logging.getLogger(logger_name)
            logger.setLevel(level)

        log_format = self.env("LOG_FORMAT", default=self.LOG_FORMAT.value)
        try:
            self.LOG_FORMAT = LogFormat(log_format.lower())
        except ValueError:
            allowed = ", ".join(f.value for f in LogFormat)
            raise ConfigurationError(
                f"Invalid {self._prefix}LOG_FORMAT='{log_format}'. "
                f"Needs to be one of {allowed}."
            )

        self.PROMETHEUS_PORT = self.positive_int(
            "PROMETHEUS_PORT", self.PROMETHEUS_PORT
        )

        self.PROVISION_RETRIES = self.non_negative_int(
            "PROVISION_RETRIES", self.PROVISION_RETRIES
        )
        self.PROVISION_RETRY_DELAY = self.positive_int(
            "PROVISION_RETRY_DELAY", self.PROVISION_RETRY_DELAY
        )
        self.PROVISION_RETRY_MAX_DELAY = self.positive_int(
            "PROVISION_RETRY_MAX_DELAY", self.PROVISION_RETRY_MAX_DELAY
        )
        if self.PROVISION_RETRY_MAX_DELAY < self.PROVISION_RETRY_DELAY:
            raise ConfigurationError(
                f"Invalid {self._prefix}PROVISION_RETRY_MAX_DELAY="
                f"'{self.PROVISION_RETRY_MAX_DELAY}'. Must not be smaller than "
                f"{self._prefix}PROVISION_RETRY_DELAY."
            )

        self.ROOT_PASSWORD = (
            self.env("ROOT_PASSWORD", default=self.ROOT_PASSWORD) or None
        )

        self.SECRET_NAME = self.name_template("SECRET_NAME", self.SECRET_NAME)
        self.SERVICE_NAME = self.name_template("SERVICE_NAME", self.SERVICE_NAME)
        self.STATEFULSET_NAME = self.name_template(
            "STATEFULSET_NAME", self.STATEFULSET_NAME
        )

        self.STORAGE_CLASS = self.env("STORAGE_CLASS", default=self.STORAGE_CLASS)

        self.STORAGE_REQUEST = self.size("STORAGE_REQUEST", self.STORAGE_REQUEST)
        self.STORAGE_LIMIT = self.size("STORAGE_LIMIT", self.STORAGE_LIMIT)
        if self.STORAGE_REQUEST > self.STORAGE_LIMIT:
            raise ConfigurationError(
                f"Invalid {self._prefix}STORAGE_REQUEST='{self.STORAGE_REQUEST}'. "
                f"Must not exceed {self._prefix}STORAGE_LIMIT="
                f"'{self.STORAGE_LIMIT}'."
            )

        self.TERMINATION_GRACE_PERIOD = self.non_negative_int(
            "TERMINATION_GRACE_PERIOD", self.TERMINATION_GRACE_PERIOD
        )

        testing = self.env("TESTING", default=str(self.TESTING))
        self.TESTING = testing.lower() == "true"

    def env(self, name: str, *, default=UNDEFINED) -> str:
        """
        Retrieve the environment variable ``name`` or fall-back to its default
        if provided. If no default is provided, a :exc:`~.ConfigurationError` is
        raised.
        """
        full_name = f"{self._prefix}{name}"
        try:
            return os.environ[full_name]
        except KeyError:
            if default is UNDEFINED:
                # raise from None - so that the traceback of the original
                # exception (KeyError) is not printed
                raise ConfigurationError(
                    f"Required environment variable '{full_name}' is not set."
                ) from None
            return default

    def non_negative_int(self, name: str, default: int) -> int:
        value = self.env(name, default=str(default))
        try:
            result = int(value)
        except ValueError:
            result = -1
        if result < 0:
            raise ConfigurationError(
                f"Invalid {self._prefix}{name}='{value}'. "
                "Needs to be a positive integer or 0."
            )
        return result

    def positive_int(self, name: str, default: int) -> int:
        value = self.env(name, default=str(default))
        try:
            result = int(value)
        except ValueError:
            result = 0
        if result <= 0:
            raise ConfigurationError(
                f"Invalid {self._prefix}{name}='{value}'. "
                "Needs to be a positive integer."
            )
        return result

    def size(self, name: str, default: bitmath.Byte) -> bitmath.Byte:
        value = self.env(name, default=str(default))
        try:
            return bitmath.parse_string(value)
        except ValueError:
            raise ConfigurationError(f"Invalid {self._prefix}{name}='{value}'.")

    def name_template(self, name: str, default: str) -> str:
        value = self.env(name, default=default)
        try:
            value.format(name="mysql")
        except (KeyError, IndexError, ValueError):
            raise ConfigurationError(
                f"Invalid {self._prefix}{name}='{value}'. The only supported "
                "placeholder is '{name}'."
            )
        if not value:
            raise ConfigurationError(
                f"Invalid {self._prefix}{name}=''. Must not be empty."
            )
        return value


#: The global instance of the MySQL operator config
config = Config(prefix="MYSQL_OPERATOR_")
