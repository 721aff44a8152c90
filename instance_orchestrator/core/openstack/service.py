# instance_orchestrator/core/openstack/service.py

"""
Caller-facing compute service.

- create_instance / instance_create : 생성 시퀀스 실행 + 결과 이벤트
- delete_instance                   : 해제 시퀀스 실행 + 서버가 사라질 때까지 폴링 + 결과 이벤트
- get_instance / find_instance_by_name : 조회 (없으면 None)

타임아웃/폴링 간격은 호출마다 Settings 를 새로 읽어서 반영한다.
인스턴스 간에 공유하는 가변 상태는 없다.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from instance_orchestrator.config.settings import Settings, get_settings
from instance_orchestrator.core.errors import (
    BackendError,
    BackendNotFoundError,
    DeleteError,
    MissingFailureDomainError,
    OrchestratorError,
    SecurityGroupNotFoundError,
)
from instance_orchestrator.core.events import (
    FAILED_CREATE_SERVER,
    FAILED_DELETE_SERVER,
    SUCCESSFUL_CREATE_SERVER,
    SUCCESSFUL_DELETE_SERVER,
    EventRecorder,
    LoggingEventRecorder,
)
from instance_orchestrator.core.openstack.addresses import server_to_instance
from instance_orchestrator.core.openstack.backend import OpenStackBackend
from instance_orchestrator.core.openstack.locator import ResourceLocator
from instance_orchestrator.core.openstack.ports import PortProvisioner
from instance_orchestrator.core.openstack.provisioner import InstanceProvisioner
from instance_orchestrator.core.openstack.teardown import InstanceTeardown
from instance_orchestrator.core.openstack.trunks import TrunkProvisioner
from instance_orchestrator.core.polling import Waiter
from instance_orchestrator.models.instance import (
    ClusterDefaults,
    Instance,
    InstanceCreateRequest,
    InstanceDescriptor,
    NetworkParam,
    SecurityGroupParam,
    SubnetParam,
    deduplicate,
)

logger = logging.getLogger(__name__)


def parse_provider_id(provider_id: str) -> str:
    """
    "openstack:///<uuid>" 형태의 provider id 에서 서버 id 를 꺼낸다.
    스킴이 없으면 그대로 서버 id 로 본다.
    """
    if "://" not in provider_id:
        return provider_id
    _, _, rest = provider_id.partition("://")
    server_id = rest.rstrip("/").split("/")[-1] if rest else ""
    if not server_id:
        raise ValueError(f"invalid provider id {provider_id!r}")
    return server_id


class ComputeService:
    def __init__(
        self,
        backend: OpenStackBackend,
        *,
        settings: Optional[Settings] = None,
        events: Optional[EventRecorder] = None,
        waiter: Optional[Waiter] = None,
    ):
        self.backend = backend
        self._settings = settings
        self.events = events or LoggingEventRecorder()
        self.waiter = waiter or Waiter()

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def _components(self, settings: Settings) -> Tuple[InstanceProvisioner, InstanceTeardown]:
        locator = ResourceLocator(self.backend)
        ports = PortProvisioner(
            self.backend,
            locator,
            cluster_name=settings.CLUSTER_NAME,
            delete_interval=settings.PORT_DELETE_RETRY_INTERVAL,
            delete_timeout=settings.PORT_DELETE_TIMEOUT,
            waiter=self.waiter,
        )
        trunks = TrunkProvisioner(
            self.backend,
            locator,
            delete_interval=settings.TRUNK_DELETE_RETRY_INTERVAL,
            delete_timeout=settings.TRUNK_DELETE_TIMEOUT,
            waiter=self.waiter,
        )
        provisioner = InstanceProvisioner(
            self.backend,
            locator,
            ports,
            trunks,
            create_timeout=settings.instance_create_timeout_seconds,
            status_interval=settings.INSTANCE_STATUS_RETRY_INTERVAL,
            waiter=self.waiter,
        )
        return provisioner, InstanceTeardown(self.backend, locator, ports, trunks)

    # ------------------------------------------------------------------ create
    def create_instance(self, descriptor: InstanceDescriptor) -> Instance:
        provisioner, _ = self._components(self.settings)
        try:
            instance = provisioner.create(descriptor)
        except OrchestratorError as exc:
            self.events.warnf(
                descriptor.name, FAILED_CREATE_SERVER, f"Failed to create server {descriptor.name}: {exc}"
            )
            raise
        self.events.eventf(
            descriptor.name, SUCCESSFUL_CREATE_SERVER, f"Created server {instance.name} with id {instance.id}"
        )
        return instance

    def instance_create(self, request: InstanceCreateRequest, cluster: ClusterDefaults) -> Instance:
        """머신 요청에 클러스터 기본값을 합쳐서 create_instance 를 호출한다."""
        try:
            descriptor = build_descriptor(request, cluster)
        except OrchestratorError as exc:
            self.events.warnf(request.name, FAILED_CREATE_SERVER, f"Failed to create server {request.name}: {exc}")
            raise
        return self.create_instance(descriptor)

    # ------------------------------------------------------------------ delete
    def delete_instance(self, provider_id: Optional[str], *, name: Optional[str] = None) -> None:
        """
        서버와 붙어 있는 port/trunk 를 지우고 서버가 사라질 때까지 기다린다.

        provider id 가 없으면 (생성이 끝나지 않은 인스턴스) 아무것도 하지 않는다.
        """
        if not provider_id:
            return

        server_id = parse_provider_id(provider_id)
        object_name = name or server_id
        settings = self.settings
        _, teardown = self._components(settings)
        try:
            teardown.delete(server_id)
            self.wait_for_deletion(server_id, settings)
        except OrchestratorError as exc:
            self.events.warnf(
                object_name,
                FAILED_DELETE_SERVER,
                f"Failed to delete server {object_name} with id {server_id}: {exc}",
            )
            raise
        self.events.eventf(object_name, SUCCESSFUL_DELETE_SERVER, f"Deleted server {server_id}")

    def wait_for_deletion(self, server_id: str, settings: Optional[Settings] = None) -> None:
        settings = settings or self.settings

        def _gone() -> bool:
            try:
                self.backend.get_server(server_id)
            except BackendNotFoundError:
                return True
            return False

        try:
            self.waiter.poll_until(
                settings.INSTANCE_STATUS_RETRY_INTERVAL,
                settings.INSTANCE_DELETE_TIMEOUT,
                _gone,
                operation="instance deletion",
                resource_id=server_id,
            )
        except BackendError as exc:
            raise DeleteError("error deleting Openstack instance", server_id, exc) from exc

    # ------------------------------------------------------------------ lookup
    def get_instance(self, instance_id: str) -> Optional[Instance]:
        if not instance_id:
            raise ValueError("resourceId should be specified to get detail")
        try:
            server = self.backend.get_server(instance_id)
        except BackendNotFoundError:
            return None
        return server_to_instance(server)

    def find_instance_by_name(self, name: str) -> Optional[Instance]:
        locator = ResourceLocator(self.backend)
        servers = locator.find_servers(name) if name else self.backend.list_servers()
        if not servers:
            return None
        return server_to_instance(servers[0])

    def associate_floating_ip(self, instance_id: str, floating_ip: str) -> None:
        self.backend.add_floating_ip(instance_id, floating_ip)
        logger.info("Associated floating ip %s with server %s", floating_ip, instance_id)


def build_descriptor(request: InstanceCreateRequest, cluster: ClusterDefaults) -> InstanceDescriptor:
    """
    InstanceCreateRequest + ClusterDefaults -> InstanceDescriptor.

    - 태그: 머신 태그 다음 클러스터 태그, 중복 제거
    - security group: 요청한 그룹 + (관리 모드면) control plane / worker 그룹
    - 네트워크: 요청이 없으면 클러스터 기본 네트워크/subnet
    """
    if not (request.failure_domain or "").strip():
        raise MissingFailureDomainError("failure domain not set")

    security_groups = list(request.security_groups)
    if cluster.managed_security_groups:
        security_groups.append(SecurityGroupParam(uuid=_managed_security_group(request, cluster)))

    networks = list(request.networks)
    if not networks and cluster.network_id:
        subnets = [SubnetParam(uuid=cluster.subnet_id)] if cluster.subnet_id else None
        networks = [NetworkParam(uuid=cluster.network_id, subnets=subnets)]

    return InstanceDescriptor(
        name=request.name,
        image=request.image,
        flavor=request.flavor,
        ssh_key_name=request.ssh_key_name,
        metadata=request.server_metadata,
        config_drive=request.config_drive,
        failure_domain=request.failure_domain,
        root_volume=request.root_volume,
        networks=networks,
        subnet=request.subnet,
        trunk=request.trunk,
        security_groups=security_groups,
        tags=deduplicate([*request.tags, *cluster.tags]),
        server_group_id=request.server_group_id,
        user_data=request.user_data,
    )


def _managed_security_group(request: InstanceCreateRequest, cluster: ClusterDefaults) -> str:
    if request.control_plane:
        group_id, role = cluster.control_plane_security_group_id, "control plane"
    else:
        group_id, role = cluster.worker_security_group_id, "worker"
    if not group_id:
        raise SecurityGroupNotFoundError(f"managed {role} security group is not set for cluster {cluster.name}")
    return group_id
