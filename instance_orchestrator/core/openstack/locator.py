# instance_orchestrator/core/openstack/locator.py

"""
Resource locator.

역할:
- 이름/필터로 기존 backend 리소스를 찾는다. 절대 생성하지 않는다.
- 0개 결과를 어떻게 볼지는 기본적으로 호출자가 결정한다.
  단, security group / image / network 는 여기서 바로 설정 에러로 바꾼다.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from instance_orchestrator.core.errors import (
    AmbiguousImageError,
    ImageNotFoundError,
    NetworkNotFoundError,
    SecurityGroupNotFoundError,
)
from instance_orchestrator.core.openstack.backend import OpenStackBackend
from instance_orchestrator.models.instance import (
    NetworkParam,
    SecurityGroupParam,
    ServerNetwork,
    deduplicate,
)
from instance_orchestrator.models.resources import Port, Server, Trunk

logger = logging.getLogger(__name__)

TRUNK_EXTENSION_ALIAS = "trunk"


class ResourceLocator:
    def __init__(self, backend: OpenStackBackend):
        self.backend = backend

    def find_ports(self, *, name: str, network_id: str) -> List[Port]:
        return self.backend.list_ports(name=name, network_id=network_id)

    def find_trunks(self, *, port_id: str, name: Optional[str] = None) -> List[Trunk]:
        return self.backend.list_trunks(name=name, port_id=port_id)

    def find_servers(self, name: str) -> List[Server]:
        # /servers 의 name 파라미터는 정규식이라 전체 일치를 명시해야 한다
        return self.backend.list_servers(name=f"^{name}$")

    def has_trunk_support(self) -> bool:
        return TRUNK_EXTENSION_ALIAS in self.backend.list_extension_aliases()

    def resolve_image_id(self, image_name: str) -> str:
        """
        이미지 이름 -> id.

        빈 이름은 "이미지 없음" (boot-from-volume) 으로 보고 "" 를 돌려준다.
        """
        if not image_name:
            return ""

        images = self.backend.list_images(name=image_name)
        if not images:
            raise ImageNotFoundError(f"no image with the name {image_name} could be found")
        if len(images) > 1:
            raise AmbiguousImageError(f"too many images with the name, {image_name}, were found")
        return images[0].id

    def resolve_security_groups(self, params: List[SecurityGroupParam]) -> List[str]:
        """
        security group 파라미터를 id 목록으로 바꾼다.

        하나라도 못 찾으면 에러. 조용히 건너뛰지 않는다.
        project_id 필터가 비어 있으면 현재 프로젝트로 제한한다.
        """
        ids: List[str] = []
        for sg in params:
            filters = sg.filter.model_dump(exclude_none=True)
            if not filters.get("project_id"):
                filters["project_id"] = self.backend.project_id
            filters["name"] = sg.name
            filters["id"] = sg.uuid

            groups = self.backend.list_security_groups(**filters)
            if not groups:
                raise SecurityGroupNotFoundError(f"security group {sg.name or sg.uuid} not found")
            ids.extend(g.id for g in groups)
        return deduplicate(ids)

    def network_ids_by_filter(self, param: NetworkParam) -> List[str]:
        filters = param.filter.model_dump(exclude_none=True)
        if param.uuid:
            filters["id"] = param.uuid
        networks = self.backend.list_networks(**filters)
        if not networks:
            raise NetworkNotFoundError("no networks could be found with the filters provided")
        return [n.id for n in networks]

    def resolve_server_networks(self, params: List[NetworkParam]) -> List[ServerNetwork]:
        """
        NetworkParam 목록 -> (network id, subnet id) 목록.

        subnet 파라미터가 없으면 네트워크당 하나, 있으면 매칭된 subnet 마다 하나씩 만든다.
        """
        nets: List[ServerNetwork] = []
        for param in params:
            for net_id in self.network_ids_by_filter(param):
                if param.subnets is None:
                    nets.append(ServerNetwork(id=net_id))
                    continue

                for subnet in param.subnets:
                    filters = subnet.filter.model_dump(exclude_none=True)
                    if subnet.uuid:
                        filters["id"] = subnet.uuid
                    filters["network_id"] = net_id
                    found = self.backend.list_subnets(**filters)
                    if not found:
                        raise NetworkNotFoundError(
                            f"no subnets could be found on network {net_id} with the filters provided"
                        )
                    nets.extend(ServerNetwork(id=s.network_id, subnet_id=s.id) for s in found)

        logger.debug("Resolved %d network attachment(s)", len(nets))
        return nets
