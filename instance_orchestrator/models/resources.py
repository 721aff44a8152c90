# backend 가 돌려주는 리소스 타입 모음 (OpenStack SDK 객체를 그대로 흘리지 않는다)

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class FixedIP(BaseModel):
    subnet_id: str
    ip_address: Optional[str] = None


class Port(BaseModel):
    id: str
    name: str = ""
    network_id: str
    fixed_ips: List[FixedIP] = Field(default_factory=list)
    security_group_ids: List[str] = Field(default_factory=list)
    description: Optional[str] = None


class Trunk(BaseModel):
    id: str
    name: str = ""
    port_id: str
    tags: List[str] = Field(default_factory=list)


class ServerInterface(BaseModel):
    port_id: str
    net_id: Optional[str] = None


class Network(BaseModel):
    id: str
    name: str = ""
    project_id: Optional[str] = None


class Subnet(BaseModel):
    id: str
    name: str = ""
    network_id: str
    cidr: Optional[str] = None


class SecurityGroup(BaseModel):
    id: str
    name: str = ""
    project_id: Optional[str] = None


class Image(BaseModel):
    id: str
    name: str = ""


class Flavor(BaseModel):
    id: str
    name: str = ""


class Server(BaseModel):
    id: str
    name: str = ""
    status: str = ""
    key_name: Optional[str] = None
    access_ipv4: Optional[str] = None
    addresses: Dict[str, Any] = Field(default_factory=dict)  # OpenStack 서버 addresses 그대로


class InternalAddress(BaseModel):
    kind: Literal["internal"] = "internal"
    network: str
    addr: str
    version: int = 4


class FloatingAddress(BaseModel):
    kind: Literal["floating"] = "floating"
    network: str
    addr: str
    version: int = 4


Address = Annotated[Union[InternalAddress, FloatingAddress], Field(discriminator="kind")]
