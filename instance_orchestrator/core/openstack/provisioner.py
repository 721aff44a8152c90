# instance_orchestrator/core/openstack/provisioner.py

"""
Provisioning orchestrator.

backend 에는 여러 리소스를 묶는 트랜잭션이 없으므로, 순서대로 호출하고
뒤 단계가 실패하면 앞 단계에서 "이번 호출에" 만든 리소스를 되돌린다.

순서 (각 단계는 다음 단계의 게이트):
    1) image 이름 -> id (빈 이름은 이미지 없음)
    2) 네트워크마다 port 확보 (+ trunk 모드면 trunk 확보), access subnet 의 fixed IP 기록
    3) access subnet 을 요청했는데 fixed IP 가 없으면 이번에 만든 port 삭제 후 설정 에러
    4) flavor 이름 -> id
    5) create payload 조립 (root volume / scheduler hint 는 선택 확장)
    6) 서버 생성. 실패하면 이번에 만든 port 삭제 후 에러
    7) ACTIVE 가 될 때까지 폴링. 타임아웃이어도 서버는 지우지 않는다.

같은 이름으로 다시 호출하면 port/trunk 는 조회로 재사용된다.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from instance_orchestrator.core.errors import (
    BackendError,
    CleanupError,
    FlavorNotFoundError,
    InstanceCreateError,
    NetworkNotFoundError,
    NoFixedIPOnSubnetError,
    OrchestratorError,
    TrunkNotSupportedError,
    TrunkTagError,
)
from instance_orchestrator.core.openstack.addresses import server_to_instance
from instance_orchestrator.core.openstack.backend import OpenStackBackend
from instance_orchestrator.core.openstack.locator import ResourceLocator
from instance_orchestrator.core.openstack.ports import PortProvisioner
from instance_orchestrator.core.openstack.server_spec import ServerCreateOptions, ServerSpecBuilder
from instance_orchestrator.core.openstack.trunks import TrunkProvisioner
from instance_orchestrator.core.polling import Waiter
from instance_orchestrator.models.instance import Instance, InstanceDescriptor, InstanceState, ServerNetwork

logger = logging.getLogger(__name__)


class _Attempt:
    """이번 호출에서 새로 만든 리소스 기록 (보상 정리 대상)."""

    def __init__(self) -> None:
        self.port_ids: List[str] = []
        self.trunk_ids: List[str] = []
        self.attached_port_ids: List[str] = []
        self.access_ipv4 = ""


class InstanceProvisioner:
    def __init__(
        self,
        backend: OpenStackBackend,
        locator: ResourceLocator,
        ports: PortProvisioner,
        trunks: TrunkProvisioner,
        *,
        create_timeout: float,
        status_interval: float,
        waiter: Optional[Waiter] = None,
    ):
        self.backend = backend
        self.locator = locator
        self.ports = ports
        self.trunks = trunks
        self.create_timeout = create_timeout
        self.status_interval = status_interval
        self.waiter = waiter or Waiter()

    def create(self, descriptor: InstanceDescriptor) -> Instance:
        """descriptor 를 해석한 뒤 생성 시퀀스를 실행한다."""
        security_group_ids = self.locator.resolve_security_groups(descriptor.security_groups)
        networks = self.locator.resolve_server_networks(descriptor.networks)
        if descriptor.trunk and not self.locator.has_trunk_support():
            raise TrunkNotSupportedError("there is no trunk support. Please disable it")
        return self.create_resolved(descriptor, networks, security_group_ids)

    def create_resolved(
        self,
        descriptor: InstanceDescriptor,
        networks: List[ServerNetwork],
        security_group_ids: List[str],
    ) -> Instance:
        # 1) image
        image_id = self.locator.resolve_image_id(descriptor.image)

        # 2) networking
        attempt = _Attempt()
        if not networks:
            raise NetworkNotFoundError(
                "no network was found or provided. Please check your machine configuration and try again"
            )
        try:
            self._ensure_networking(descriptor, networks, security_group_ids, attempt)
        except OrchestratorError as exc:
            self._rollback(attempt, exc)
            raise

        # 3) access-address invariant
        if descriptor.subnet and not attempt.access_ipv4:
            exc = NoFixedIPOnSubnetError(descriptor.subnet)
            self._rollback(attempt, exc)
            raise exc

        # 4) flavor
        try:
            flavor = self.backend.find_flavor(descriptor.flavor)
            if flavor is None:
                raise FlavorNotFoundError(f"error getting flavor id from flavor name {descriptor.flavor}")
        except OrchestratorError as exc:
            self._rollback(attempt, exc)
            raise

        # 5) payload
        base = ServerCreateOptions(
            name=descriptor.name,
            image_id=image_id,
            flavor_id=flavor.id,
            availability_zone=descriptor.failure_domain,
            port_ids=attempt.attached_port_ids,
            user_data=descriptor.user_data,
            security_group_ids=security_group_ids,
            tags=descriptor.tags,
            metadata=descriptor.metadata,
            config_drive=descriptor.config_drive,
            access_ipv4=attempt.access_ipv4,
            key_name=descriptor.ssh_key_name,
        )
        attrs = (
            ServerSpecBuilder(base)
            .with_root_volume(descriptor.root_volume)
            .with_server_group(descriptor.server_group_id)
            .build()
        )

        # 6) create
        try:
            server = self.backend.create_server(**attrs)
        except BackendError as exc:
            logger.exception("Failed to create server %s", descriptor.name)
            error = InstanceCreateError("error creating Openstack instance", descriptor.name, exc)
            self._rollback(attempt, error)
            raise error from exc
        logger.info("Server %s created with id %s, waiting for ACTIVE", descriptor.name, server.id)

        # 7) converge
        return self.wait_for_active(server.id)

    def wait_for_active(self, server_id: str) -> Instance:
        def _check() -> Instance:
            return server_to_instance(self.backend.get_server(server_id))

        try:
            instance = self.waiter.poll_until(
                self.status_interval,
                self.create_timeout,
                _check,
                operation="ACTIVE status",
                resource_id=server_id,
                predicate=lambda i: i.state == InstanceState.ACTIVE.value,
            )
        except BackendError as exc:
            raise InstanceCreateError("error creating Openstack instance", server_id, exc) from exc
        logger.info("Server %s is ACTIVE (ip=%s)", server_id, instance.ip)
        return instance

    # ------------------------------------------------------------------
    def _ensure_networking(
        self,
        descriptor: InstanceDescriptor,
        networks: List[ServerNetwork],
        security_group_ids: List[str],
        attempt: _Attempt,
    ) -> None:
        for network in networks:
            if not network.id:
                raise NetworkNotFoundError(
                    "no network was found or provided. Please check your machine configuration and try again"
                )
            port, created = self.ports.ensure_port(descriptor.name, network, security_group_ids)
            if created:
                attempt.port_ids.append(port.id)
            attempt.attached_port_ids.append(port.id)

            for fixed_ip in port.fixed_ips:
                if fixed_ip.subnet_id == descriptor.subnet and fixed_ip.ip_address:
                    attempt.access_ipv4 = fixed_ip.ip_address

            if descriptor.trunk:
                try:
                    trunk, trunk_created = self.trunks.ensure_trunk(descriptor.name, port, descriptor.tags)
                except TrunkTagError as exc:
                    if exc.created:
                        attempt.trunk_ids.append(exc.resource_id)
                    raise
                if trunk_created:
                    attempt.trunk_ids.append(trunk.id)

    def _rollback(self, attempt: _Attempt, original: BaseException) -> None:
        """
        이번 호출에서 만든 trunk -> port 순으로 삭제한다.

        재사용한 기존 port 는 건드리지 않는다. 정리 실패는 CleanupError 로 올린다.
        """
        if not attempt.port_ids and not attempt.trunk_ids:
            return
        logger.warning(
            "Rolling back %d port(s) and %d trunk(s) after failure: %s",
            len(attempt.port_ids), len(attempt.trunk_ids), original,
        )
        try:
            for trunk_id in attempt.trunk_ids:
                self.trunks.delete_trunk(trunk_id)
            self.ports.delete_ports(attempt.port_ids)
        except OrchestratorError as cleanup_exc:
            raise CleanupError(original, cleanup_exc) from cleanup_exc
