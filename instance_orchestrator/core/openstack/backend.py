# instance_orchestrator/core/openstack/backend.py

"""
OpenStack backend boundary.

역할:
- openstacksdk Connection 위에 리소스별 create/list/get/delete 를 얇게 감싼다.
- SDK 객체는 models.resources 의 pydantic 모델로 바꿔서 돌려준다.
- SDK 예외는 여기서 한 번만 분류한다:
    404            -> BackendNotFoundError
    409/429/5xx 일부 -> BackendRetryableError
    그 외           -> BackendError
  오케스트레이터는 이 분류만 보고 판단하고, 에러 문자열은 보지 않는다.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from openstack import connection
from openstack import exceptions as os_exc

from instance_orchestrator.core.errors import (
    BackendError,
    BackendNotFoundError,
    BackendRetryableError,
)
from instance_orchestrator.models.resources import (
    FixedIP,
    Flavor,
    Image,
    Network,
    Port,
    SecurityGroup,
    Server,
    ServerInterface,
    Subnet,
    Trunk,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({409, 429, 502, 503, 504})


def classify_sdk_error(exc: os_exc.SDKException, operation: str) -> BackendError:
    status = getattr(exc, "status_code", None)
    message = f"{operation}: {exc}"
    if isinstance(exc, os_exc.ResourceNotFound) or status == 404:
        return BackendNotFoundError(message, status_code=status)
    if status in RETRYABLE_STATUS_CODES:
        return BackendRetryableError(message, status_code=status)
    return BackendError(message, status_code=status)


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except os_exc.SDKException as exc:
        raise classify_sdk_error(exc, operation) from exc


def _drop_empty(filters: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in filters.items() if v not in (None, "")}


# ---------------------------------------------------------------------------
# SDK resource -> model
# ---------------------------------------------------------------------------
def _to_port(p: Any) -> Port:
    return Port(
        id=p.id,
        name=p.name or "",
        network_id=p.network_id,
        fixed_ips=[
            FixedIP(subnet_id=ip.get("subnet_id", ""), ip_address=ip.get("ip_address"))
            for ip in (p.fixed_ips or [])
        ],
        security_group_ids=list(p.security_group_ids or []),
        description=p.description,
    )


def _to_trunk(t: Any) -> Trunk:
    return Trunk(id=t.id, name=t.name or "", port_id=t.port_id, tags=list(t.tags or []))


def _to_server(s: Any) -> Server:
    return Server(
        id=s.id,
        name=s.name or "",
        status=s.status or "",
        key_name=s.key_name,
        access_ipv4=s.access_ipv4,
        addresses=s.addresses or {},
    )


class OpenStackBackend:
    """Typed per-resource operations over an openstacksdk connection."""

    def __init__(self, conn: connection.Connection):
        self._conn = conn

    @property
    def project_id(self) -> Optional[str]:
        return self._conn.current_project_id

    # ----------------------------------------------------------------- network
    def list_ports(self, *, name: Optional[str] = None, network_id: Optional[str] = None) -> List[Port]:
        with _translate_errors("list ports"):
            found = self._conn.network.ports(**_drop_empty({"name": name, "network_id": network_id}))
            return [_to_port(p) for p in found]

    def create_port(
        self,
        *,
        name: str,
        network_id: str,
        security_group_ids: Optional[List[str]] = None,
        fixed_ips: Optional[List[Dict[str, str]]] = None,
        description: Optional[str] = None,
    ) -> Port:
        attrs: Dict[str, Any] = {"name": name, "network_id": network_id}
        if security_group_ids is not None:
            attrs["security_group_ids"] = security_group_ids
        if fixed_ips:
            attrs["fixed_ips"] = fixed_ips
        if description:
            attrs["description"] = description
        with _translate_errors(f"create port {name}"):
            return _to_port(self._conn.network.create_port(**attrs))

    def get_port(self, port_id: str) -> Port:
        with _translate_errors(f"get port {port_id}"):
            return _to_port(self._conn.network.get_port(port_id))

    def delete_port(self, port_id: str) -> None:
        with _translate_errors(f"delete port {port_id}"):
            self._conn.network.delete_port(port_id, ignore_missing=False)

    def list_trunks(self, *, name: Optional[str] = None, port_id: Optional[str] = None) -> List[Trunk]:
        with _translate_errors("list trunks"):
            found = self._conn.network.trunks(**_drop_empty({"name": name, "port_id": port_id}))
            return [_to_trunk(t) for t in found]

    def create_trunk(self, *, name: str, port_id: str) -> Trunk:
        with _translate_errors(f"create trunk {name}"):
            return _to_trunk(self._conn.network.create_trunk(name=name, port_id=port_id))

    def replace_trunk_tags(self, trunk_id: str, tags: List[str]) -> None:
        with _translate_errors(f"tag trunk {trunk_id}"):
            trunk = self._conn.network.get_trunk(trunk_id)
            self._conn.network.set_tags(trunk, tags)

    def delete_trunk(self, trunk_id: str) -> None:
        with _translate_errors(f"delete trunk {trunk_id}"):
            self._conn.network.delete_trunk(trunk_id, ignore_missing=False)

    def list_extension_aliases(self) -> List[str]:
        with _translate_errors("list network extensions"):
            return [ext.alias for ext in self._conn.network.extensions()]

    def list_security_groups(self, **filters: Any) -> List[SecurityGroup]:
        with _translate_errors("list security groups"):
            return [
                SecurityGroup(id=g.id, name=g.name or "", project_id=g.project_id)
                for g in self._conn.network.security_groups(**_drop_empty(filters))
            ]

    def list_networks(self, **filters: Any) -> List[Network]:
        with _translate_errors("list networks"):
            return [
                Network(id=n.id, name=n.name or "", project_id=n.project_id)
                for n in self._conn.network.networks(**_drop_empty(filters))
            ]

    def list_subnets(self, **filters: Any) -> List[Subnet]:
        with _translate_errors("list subnets"):
            return [
                Subnet(id=s.id, name=s.name or "", network_id=s.network_id, cidr=s.cidr)
                for s in self._conn.network.subnets(**_drop_empty(filters))
            ]

    # ------------------------------------------------------------------- image
    def list_images(self, *, name: str) -> List[Image]:
        with _translate_errors(f"list images {name}"):
            return [Image(id=i.id, name=i.name or "") for i in self._conn.image.images(name=name)]

    # ----------------------------------------------------------------- compute
    def find_flavor(self, name: str) -> Optional[Flavor]:
        with _translate_errors(f"find flavor {name}"):
            flv = self._conn.compute.find_flavor(name, ignore_missing=True)
        if flv is None:
            return None
        return Flavor(id=flv.id, name=flv.name or name)

    def create_server(self, **attrs: Any) -> Server:
        with _translate_errors(f"create server {attrs.get('name', '')}"):
            return _to_server(self._conn.compute.create_server(**attrs))

    def get_server(self, server_id: str) -> Server:
        with _translate_errors(f"get server {server_id}"):
            return _to_server(self._conn.compute.get_server(server_id))

    def list_servers(self, *, name: Optional[str] = None) -> List[Server]:
        with _translate_errors("list servers"):
            found = self._conn.compute.servers(details=True, **_drop_empty({"name": name}))
            return [_to_server(s) for s in found]

    def delete_server(self, server_id: str) -> None:
        with _translate_errors(f"delete server {server_id}"):
            self._conn.compute.delete_server(server_id, ignore_missing=False)

    def list_server_interfaces(self, server_id: str) -> List[ServerInterface]:
        with _translate_errors(f"list interfaces of server {server_id}"):
            return [
                ServerInterface(port_id=i.port_id, net_id=i.net_id)
                for i in self._conn.compute.server_interfaces(server_id)
            ]

    def detach_interface(self, server_id: str, port_id: str) -> None:
        with _translate_errors(f"detach port {port_id} from server {server_id}"):
            self._conn.compute.delete_server_interface(port_id, server=server_id, ignore_missing=False)

    def add_floating_ip(self, server_id: str, address: str) -> None:
        with _translate_errors(f"associate floating ip {address} with server {server_id}"):
            self._conn.compute.add_floating_ip_to_server(server_id, address)
