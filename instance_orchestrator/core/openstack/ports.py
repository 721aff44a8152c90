# instance_orchestrator/core/openstack/ports.py

import logging
from typing import List, Optional, Tuple

from instance_orchestrator.core.errors import (
    BackendError,
    BackendNotFoundError,
    DeleteError,
    PortCreateError,
)
from instance_orchestrator.core.openstack.backend import OpenStackBackend
from instance_orchestrator.core.openstack.locator import ResourceLocator
from instance_orchestrator.core.polling import Waiter
from instance_orchestrator.models.instance import ServerNetwork
from instance_orchestrator.models.resources import Port

logger = logging.getLogger(__name__)


class PortProvisioner:
    """
    (인스턴스 이름, 네트워크 id) 쌍마다 port 를 최대 한 번만 만든다.

    저장된 UUID 가 아니라 이름+네트워크 조회가 idempotency key 다.
    port 생성 후 서버 생성 전에 죽었다가 다시 호출돼도 기존 port 를 재사용한다.
    """

    def __init__(
        self,
        backend: OpenStackBackend,
        locator: ResourceLocator,
        *,
        cluster_name: str,
        delete_interval: float = 5.0,
        delete_timeout: float = 180.0,
        waiter: Optional[Waiter] = None,
    ):
        self.backend = backend
        self.locator = locator
        self.cluster_name = cluster_name
        self.delete_interval = delete_interval
        self.delete_timeout = delete_timeout
        self.waiter = waiter or Waiter()

    def ensure_port(
        self,
        instance_name: str,
        network: ServerNetwork,
        security_group_ids: List[str],
    ) -> Tuple[Port, bool]:
        """
        port 를 찾거나 만든다.

        Returns
        -------
        (port, created) : (Port, bool)
            created 는 이번 호출에서 새로 만들었는지 여부. 보상 정리 대상 판단에 쓴다.
        """
        existing = self.locator.find_ports(name=instance_name, network_id=network.id)
        if existing:
            logger.info("Reusing port %s for %s on network %s", existing[0].id, instance_name, network.id)
            return existing[0], False

        fixed_ips = [{"subnet_id": network.subnet_id}] if network.subnet_id else None
        try:
            port = self.backend.create_port(
                name=instance_name,
                network_id=network.id,
                security_group_ids=security_group_ids,
                fixed_ips=fixed_ips,
                description=f"Created by instance-orchestrator cluster {self.cluster_name}",
            )
        except BackendError as exc:
            raise PortCreateError("create port for server", instance_name, exc) from exc

        logger.info("Created port %s for %s on network %s", port.id, instance_name, network.id)
        return port, True

    def delete_ports(self, port_ids: List[str]) -> None:
        """
        보상 정리: 주어진 port 들을 삭제한다 (best-effort).

        이미 없는 port 는 성공으로 본다. 나머지 port 도 모두 시도한 뒤
        첫 번째 실패를 DeleteError 로 올린다.
        """
        first_error: Optional[DeleteError] = None
        for port_id in port_ids:
            try:
                self.backend.delete_port(port_id)
            except BackendNotFoundError:
                continue
            except BackendError as exc:
                logger.error("Failed to clean up port %s: %s", port_id, exc)
                if first_error is None:
                    first_error = DeleteError("delete port", port_id, exc)
        if first_error is not None:
            raise first_error

    def delete_port(self, port_id: str) -> None:
        """port 삭제를 retryable 에러가 사라질 때까지 재시도한다."""

        def _attempt() -> bool:
            try:
                self.backend.delete_port(port_id)
            except BackendNotFoundError:
                pass
            return True

        try:
            self.waiter.poll_until(
                self.delete_interval,
                self.delete_timeout,
                _attempt,
                operation="port deletion",
                resource_id=port_id,
            )
        except BackendError as exc:
            raise DeleteError("error deleting the port", port_id, exc) from exc
