# instance_orchestrator/core/openstack/addresses.py

"""
Server addresses 정규화.

compute API 의 addresses 는 {네트워크 이름: [{"addr", "version", "OS-EXT-IPS:type"}, ...]}
형태의 느슨한 dict 다. 여기서 한 번만 파싱해서 InternalAddress / FloatingAddress 로 바꾸고,
이후 코드는 dict 를 직접 뒤지지 않는다.
"""

from __future__ import annotations

import ipaddress
from typing import Any, Dict, List

from pydantic import TypeAdapter, ValidationError

from instance_orchestrator.core.errors import AddressParseError
from instance_orchestrator.models.instance import Instance
from instance_orchestrator.models.resources import Address, FloatingAddress, Server

_ADDRESS = TypeAdapter(Address)


def parse_addresses(addresses: Dict[str, Any]) -> List[Address]:
    parsed: List[Address] = []
    for network_name, entries in (addresses or {}).items():
        if not isinstance(entries, list):
            raise AddressParseError(f"extract IP from instance err: addresses of {network_name!r} is not a list")
        for entry in entries:
            if not isinstance(entry, dict):
                raise AddressParseError(f"extract IP from instance err: unexpected entry {entry!r}")
            kind = "floating" if entry.get("OS-EXT-IPS:type") == "floating" else "internal"
            try:
                parsed.append(
                    _ADDRESS.validate_python(
                        {
                            "kind": kind,
                            "network": network_name,
                            "addr": entry.get("addr"),
                            "version": int(entry.get("version", 4)),
                        }
                    )
                )
            except (TypeError, ValueError, ValidationError) as exc:
                raise AddressParseError(f"extract IP from instance err: {exc}") from exc
    return parsed


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def server_to_instance(server: Server) -> Instance:
    """
    Server -> Instance.

    access_ipv4 가 유효한 IP 면 그걸 internal IP 로 쓴다.
    아니면 IPv4 주소들 중 floating / internal 을 골라 채운다.
    """
    instance = Instance(
        id=server.id,
        name=server.name,
        state=server.status,
        ssh_key_name=server.key_name,
    )
    if server.access_ipv4 and _is_ip(server.access_ipv4):
        instance.ip = server.access_ipv4
        return instance

    for address in parse_addresses(server.addresses):
        if address.version != 4:
            continue
        if isinstance(address, FloatingAddress):
            instance.floating_ip = address.addr
        else:
            instance.ip = address.addr
    return instance
