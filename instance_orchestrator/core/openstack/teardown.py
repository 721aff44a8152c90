# instance_orchestrator/core/openstack/teardown.py

"""
Teardown orchestrator (생성의 역순).

    1) 서버에 붙은 interface 목록 조회. 없으면 서버만 삭제하고 끝.
    2) interface 마다: detach -> (trunk 확장이 있고 trunk 가 정확히 하나면) trunk 삭제 -> port 삭제
       trunk / port 삭제는 retryable 에러를 삼키며 폴링, 타임아웃은 치명적.
    3) 서버 삭제 (API 호출만, 사라지는 것은 호출자가 따로 폴링)

어느 단계든 not found 는 이미 지워진 것으로 보고 성공 처리한다.
"""

import logging
from typing import List, Optional

from instance_orchestrator.core.errors import BackendError, BackendNotFoundError, DeleteError
from instance_orchestrator.core.openstack.backend import OpenStackBackend
from instance_orchestrator.core.openstack.locator import ResourceLocator
from instance_orchestrator.core.openstack.ports import PortProvisioner
from instance_orchestrator.core.openstack.trunks import TrunkProvisioner
from instance_orchestrator.models.resources import ServerInterface

logger = logging.getLogger(__name__)


class InstanceTeardown:
    def __init__(
        self,
        backend: OpenStackBackend,
        locator: ResourceLocator,
        ports: PortProvisioner,
        trunks: TrunkProvisioner,
    ):
        self.backend = backend
        self.locator = locator
        self.ports = ports
        self.trunks = trunks

    def delete(self, instance_id: str) -> None:
        interfaces = self._list_interfaces(instance_id)
        if interfaces is None:
            logger.info("Server %s already gone", instance_id)
            return
        if not interfaces:
            self._delete_server(instance_id)
            return

        try:
            trunk_support = self.locator.has_trunk_support()
        except BackendError as exc:
            raise DeleteError("obtaining network extensions for", instance_id, exc) from exc

        for interface in interfaces:
            self._release_interface(instance_id, interface, trunk_support)

        self._delete_server(instance_id)

    def _list_interfaces(self, instance_id: str) -> Optional[List[ServerInterface]]:
        try:
            return self.backend.list_server_interfaces(instance_id)
        except BackendNotFoundError:
            return None
        except BackendError as exc:
            raise DeleteError("list interfaces of server", instance_id, exc) from exc

    def _release_interface(self, instance_id: str, interface: ServerInterface, trunk_support: bool) -> None:
        port_id = interface.port_id
        try:
            self.backend.detach_interface(instance_id, port_id)
        except BackendNotFoundError:
            pass
        except BackendError as exc:
            raise DeleteError("detach port", port_id, exc) from exc

        if trunk_support:
            try:
                trunk = self.trunks.find_trunk_for_port(port_id)
            except BackendError as exc:
                raise DeleteError("search trunk for port", port_id, exc) from exc
            if trunk is not None:
                logger.info("Deleting trunk %s of port %s", trunk.id, port_id)
                self.trunks.delete_trunk(trunk.id)

        logger.info("Deleting port %s of server %s", port_id, instance_id)
        self.ports.delete_port(port_id)

    def _delete_server(self, instance_id: str) -> None:
        try:
            self.backend.delete_server(instance_id)
        except BackendNotFoundError:
            return
        except BackendError as exc:
            raise DeleteError("delete server", instance_id, exc) from exc
        logger.info("Delete requested for server %s", instance_id)
