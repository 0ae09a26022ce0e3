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

import enum

API_GROUP = "volc.io"
API_VERSION = "v1alpha1"
RESOURCE_MYSQL = "mysqls"
KIND_MYSQL = "MySQL"

LABEL_APP = "app"
LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
LABEL_NAME = "app.kubernetes.io/name"
LABEL_PART_OF = "app.kubernetes.io/part-of"

APP_NAME = "mysql"
OPERATOR_NAME = "mysql-operator"

KOPF_STATE_STORE_PREFIX = f"operator.{API_GROUP}"

MYSQL_CREATE_ID = "mysql_create"
MYSQL_UPDATE_ID = "mysql_update"
MYSQL_DELETE_ID = "mysql_delete"

CONTAINER_NAME = "mysql"
VOLUME_NAME = "mysql-store"
VOLUME_MOUNT_PATH = "/var/lib/mysql"
PASSWORD_ENV_NAME = "MYSQL_ROOT_PASSWORD"
PASSWORD_LENGTH = 32
REPLICAS = 1

STATUS_RECEIVED = "Received In ADD"
STATUS_FAILED = "Failed"
STATUS_READY = "Ready"


class Port(enum.Enum):
    MYSQL = 3306


class MySQLPhase(str, enum.Enum):
    PENDING = "Pending"
    PROVISIONING = "Provisioning"
    READY = "Ready"
    FAILED = "Failed"
    TERMINATING = "Terminating"


class LogFormat(str, enum.Enum):
    PLAIN = "plain"
    JSON = "json"
