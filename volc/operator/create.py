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

from typing import List, Optional

from kubernetes_asyncio.client import (
    V1Container,
    V1ContainerPort,
    V1EnvVar,
    V1EnvVarSource,
    V1LabelSelector,
    V1ObjectMeta,
    V1OwnerReference,
    V1PersistentVolumeClaim,
    V1PersistentVolumeClaimSpec,
    V1PodSpec,
    V1PodTemplateSpec,
    V1Secret,
    V1SecretKeySelector,
    V1Service,
    V1ServicePort,
    V1ServiceSpec,
    V1StatefulSet,
    V1StatefulSetSpec,
    V1VolumeMount,
    V1VolumeResourceRequirements,
)

from volc.operator.config import config
from volc.operator.constants import (
    API_GROUP,
    API_VERSION,
    APP_NAME,
    CONTAINER_NAME,
    KIND_MYSQL,
    LABEL_APP,
    LABEL_MANAGED_BY,
    LABEL_NAME,
    LABEL_PART_OF,
    OPERATOR_NAME,
    PASSWORD_ENV_NAME,
    REPLICAS,
    VOLUME_MOUNT_PATH,
    VOLUME_NAME,
    Port,
)
from volc.operator.utils.formatting import b64encode, format_bitmath
from volc.operator.utils.typing import LabelType


def get_secret_name(name: str) -> str:
    return config.SECRET_NAME.format(name=name)


def get_service_name(name: str) -> str:
    return config.SERVICE_NAME.format(name=name)


def get_statefulset_name(name: str) -> str:
    return config.STATEFULSET_NAME.format(name=name)


def get_image(version: str) -> str:
    return f"{config.IMAGE_PREFIX}{version}"


def get_selector_labels(name: str) -> LabelType:
    """
    The labels the Service and the StatefulSet use to select the pods of the
    MySQL instance ``name``.
    """
    return {LABEL_APP: APP_NAME, LABEL_NAME: name}


def get_labels(name: str, extra: Optional[LabelType] = None) -> LabelType:
    """
    All labels put on dependent resources of the MySQL instance ``name``.

    Labels from ``extra`` (usually the labels of the MySQL resource itself) are
    added, but cannot override the operator's own labels.
    """
    labels = dict(extra or {})
    labels.update(get_selector_labels(name))
    labels.update({LABEL_MANAGED_BY: OPERATOR_NAME, LABEL_PART_OF: APP_NAME})
    return labels


def get_owner_references(
    name: str, uid: Optional[str]
) -> Optional[List[V1OwnerReference]]:
    if not uid:
        return None
    return [
        V1OwnerReference(
            api_version=f"{API_GROUP}/{API_VERSION}",
            block_owner_deletion=True,
            controller=True,
            kind=KIND_MYSQL,
            name=name,
            uid=uid,
        )
    ]


def get_password_secret(
    owner_references: Optional[List[V1OwnerReference]],
    name: str,
    labels: LabelType,
    password: str,
) -> V1Secret:
    return V1Secret(
        data={PASSWORD_ENV_NAME: b64encode(password)},
        metadata=V1ObjectMeta(
            name=get_secret_name(name),
            labels=labels,
            owner_references=owner_references,
        ),
        type="Opaque",
    )


def get_headless_service(
    owner_references: Optional[List[V1OwnerReference]],
    name: str,
    labels: LabelType,
) -> V1Service:
    return V1Service(
        metadata=V1ObjectMeta(
            name=get_service_name(name),
            labels=labels,
            owner_references=owner_references,
        ),
        spec=V1ServiceSpec(
            # Headless service
            cluster_ip="None",
            ports=[
                V1ServicePort(
                    name="mysql", port=Port.MYSQL.value, target_port=Port.MYSQL.value
                )
            ],
            selector=get_selector_labels(name),
        ),
    )


def get_statefulset_containers(name: str, image: str) -> List[V1Container]:
    return [
        V1Container(
            name=CONTAINER_NAME,
            image=image,
            ports=[V1ContainerPort(container_port=Port.MYSQL.value, name="mysql")],
            env=[
                V1EnvVar(
                    name=PASSWORD_ENV_NAME,
                    value_from=V1EnvVarSource(
                        secret_key_ref=V1SecretKeySelector(
                            key=PASSWORD_ENV_NAME, name=get_secret_name(name)
                        ),
                    ),
                ),
            ],
            volume_mounts=[
                V1VolumeMount(name=VOLUME_NAME, mount_path=VOLUME_MOUNT_PATH),
            ],
        )
    ]


def get_statefulset_pvc() -> List[V1PersistentVolumeClaim]:
    return [
        V1PersistentVolumeClaim(
            metadata=V1ObjectMeta(name=VOLUME_NAME),
            spec=V1PersistentVolumeClaimSpec(
                access_modes=["ReadWriteOnce"],
                resources=V1VolumeResourceRequirements(
                    requests={"storage": format_bitmath(config.STORAGE_REQUEST)},
                    limits={"storage": format_bitmath(config.STORAGE_LIMIT)},
                ),
                storage_class_name=config.STORAGE_CLASS,
            ),
        )
    ]


def get_statefulset(
    owner_references: Optional[List[V1OwnerReference]],
    namespace: str,
    name: str,
    labels: LabelType,
    version: str,
) -> V1StatefulSet:
    return V1StatefulSet(
        metadata=V1ObjectMeta(
            labels=labels,
            name=get_statefulset_name(name),
            namespace=namespace,
            owner_references=owner_references,
        ),
        spec=V1StatefulSetSpec(
            replicas=REPLICAS,
            selector=V1LabelSelector(match_labels=get_selector_labels(name)),
            service_name=get_service_name(name),
            template=V1PodTemplateSpec(
                metadata=V1ObjectMeta(labels=labels),
                spec=V1PodSpec(
                    containers=get_statefulset_containers(name, get_image(version)),
                    termination_grace_period_seconds=config.TERMINATION_GRACE_PERIOD,
                ),
            ),
            volume_claim_templates=get_statefulset_pvc(),
        ),
    )
