# instance_orchestrator/core/openstack/trunks.py

import logging
from typing import List, Optional, Tuple

from instance_orchestrator.core.errors import (
    BackendError,
    BackendNotFoundError,
    DeleteError,
    TrunkCreateError,
    TrunkTagError,
)
from instance_orchestrator.core.openstack.backend import OpenStackBackend
from instance_orchestrator.core.openstack.locator import ResourceLocator
from instance_orchestrator.core.polling import Waiter
from instance_orchestrator.models.resources import Port, Trunk

logger = logging.getLogger(__name__)


class TrunkProvisioner:
    """parent port 하나당 trunk 를 최대 한 번만 만든다. (이름, parent port id) 로 조회."""

    def __init__(
        self,
        backend: OpenStackBackend,
        locator: ResourceLocator,
        *,
        delete_interval: float = 5.0,
        delete_timeout: float = 180.0,
        waiter: Optional[Waiter] = None,
    ):
        self.backend = backend
        self.locator = locator
        self.delete_interval = delete_interval
        self.delete_timeout = delete_timeout
        self.waiter = waiter or Waiter()

    def ensure_trunk(self, instance_name: str, parent_port: Port, tags: List[str]) -> Tuple[Trunk, bool]:
        """trunk 를 찾거나 만든 뒤 태그를 인스턴스 태그로 교체한다. (trunk, created) 반환."""
        existing = self.locator.find_trunks(name=instance_name, port_id=parent_port.id)
        created = not existing
        if existing:
            trunk = existing[0]
        else:
            try:
                trunk = self.backend.create_trunk(name=instance_name, port_id=parent_port.id)
            except BackendError as exc:
                raise TrunkCreateError("create trunk for server", instance_name, exc) from exc
            logger.info("Created trunk %s with parent port %s", trunk.id, parent_port.id)

        # trunk 는 이미 존재하므로 태깅 실패는 라벨 불일치 상태 -> 그대로 전파
        try:
            self.backend.replace_trunk_tags(trunk.id, tags)
        except BackendError as exc:
            raise TrunkTagError("tagging trunk for server", trunk.id, exc, created=created) from exc

        return trunk.model_copy(update={"tags": list(tags)}), created

    def find_trunk_for_port(self, port_id: str) -> Optional[Trunk]:
        """port 를 parent 로 가진 trunk 가 정확히 하나일 때만 돌려준다."""
        trunks = self.locator.find_trunks(port_id=port_id)
        if len(trunks) == 1:
            return trunks[0]
        if len(trunks) > 1:
            logger.warning("Found %d trunks for port %s, leaving them in place", len(trunks), port_id)
        return None

    def delete_trunk(self, trunk_id: str) -> None:
        def _attempt() -> bool:
            try:
                self.backend.delete_trunk(trunk_id)
            except BackendNotFoundError:
                pass
            return True

        try:
            self.waiter.poll_until(
                self.delete_interval,
                self.delete_timeout,
                _attempt,
                operation="trunk deletion",
                resource_id=trunk_id,
            )
        except BackendError as exc:
            raise DeleteError("error deleting the trunk", trunk_id, exc) from exc
