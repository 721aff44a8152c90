from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator


def deduplicate(sequence: Iterable[str]) -> List[str]:
    """순서를 유지하면서 중복 제거. ["a", "b", "a", "c"] -> ["a", "b", "c"]"""
    seen = set()
    unique: List[str] = []
    for item in sequence:
        if item not in seen:
            seen.add(item)
            unique.append(item)
    return unique


class InstanceState(str, Enum):
    BUILD = "BUILD"
    ACTIVE = "ACTIVE"
    ERROR = "ERROR"
    STOPPED = "STOPPED"
    SHUTOFF = "SHUTOFF"
    DELETING = "DELETING"
    DELETED = "DELETED"


class RootVolume(BaseModel):
    source_type: str = "image"
    source_uuid: str = ""
    size: int = Field(0, ge=0)  # GB, 0 이면 boot-from-volume 을 쓰지 않는다
    device_type: Optional[str] = None


# ---------------------------------------------------------------------------
# Network / subnet / security group selectors
# ---------------------------------------------------------------------------
class NetworkFilter(BaseModel):
    name: Optional[str] = None
    id: Optional[str] = None
    project_id: Optional[str] = None
    tags: Optional[str] = None


class SubnetFilter(BaseModel):
    name: Optional[str] = None
    id: Optional[str] = None
    cidr: Optional[str] = None
    project_id: Optional[str] = None
    tags: Optional[str] = None


class SubnetParam(BaseModel):
    uuid: Optional[str] = None
    filter: SubnetFilter = Field(default_factory=SubnetFilter)


class NetworkParam(BaseModel):
    """네트워크 attach 요청. uuid 를 직접 주거나 filter 로 하나 이상의 네트워크를 고른다."""

    uuid: Optional[str] = None
    filter: NetworkFilter = Field(default_factory=NetworkFilter)
    subnets: Optional[List[SubnetParam]] = None


class SecurityGroupFilter(BaseModel):
    project_id: Optional[str] = None
    tags: Optional[str] = None
    description: Optional[str] = None


class SecurityGroupParam(BaseModel):
    name: Optional[str] = None
    uuid: Optional[str] = None
    filter: SecurityGroupFilter = Field(default_factory=SecurityGroupFilter)


class ServerNetwork(BaseModel):
    """이미 id 로 해석된 네트워크 (+ 선택적 subnet)."""

    id: str = ""
    subnet_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Instance descriptor (input) / Instance (output)
# ---------------------------------------------------------------------------
class InstanceDescriptor(BaseModel):
    name: str
    image: str = ""  # 빈 문자열이면 이미지를 지정하지 않는다 (boot-from-volume)
    flavor: str
    ssh_key_name: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    config_drive: Optional[bool] = None
    failure_domain: str
    root_volume: Optional[RootVolume] = None
    networks: List[NetworkParam] = Field(default_factory=list)
    subnet: str = ""  # access address 를 뽑을 subnet id
    trunk: bool = False
    security_groups: List[SecurityGroupParam] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    server_group_id: str = ""
    user_data: Optional[str] = None

    @field_validator("failure_domain")
    @classmethod
    def _failure_domain_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("failure domain not set")
        return value

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, value: List[str]) -> List[str]:
        # tag API 는 중복 태그를 거부한다
        return deduplicate(value)


class Instance(BaseModel):
    id: str
    name: str
    state: str
    ip: Optional[str] = None
    floating_ip: Optional[str] = None
    ssh_key_name: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.state == InstanceState.ACTIVE.value


# ---------------------------------------------------------------------------
# Machine request + cluster defaults -> descriptor
# ---------------------------------------------------------------------------
class ClusterDefaults(BaseModel):
    """클러스터 단위로 공유되는 기본값."""

    name: str = "default"
    tags: List[str] = Field(default_factory=list)
    network_id: Optional[str] = None
    subnet_id: Optional[str] = None
    # managed_security_groups 가 켜져 있으면 머신 역할에 맞는 그룹을 붙인다
    managed_security_groups: bool = False
    control_plane_security_group_id: Optional[str] = None
    worker_security_group_id: Optional[str] = None


class InstanceCreateRequest(BaseModel):
    """
    머신 하나에 대한 생성 요청. ClusterDefaults 와 합쳐서 InstanceDescriptor 가 된다.

    failure_domain 은 여기서는 비어 있을 수 있고, 합치는 단계에서 설정 에러가 된다.
    """

    name: str
    control_plane: bool = False
    image: str = ""
    flavor: str
    ssh_key_name: Optional[str] = None
    server_metadata: Dict[str, str] = Field(default_factory=dict)
    config_drive: Optional[bool] = None
    failure_domain: Optional[str] = None
    root_volume: Optional[RootVolume] = None
    networks: List[NetworkParam] = Field(default_factory=list)
    subnet: str = ""
    trunk: bool = False
    security_groups: List[SecurityGroupParam] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    server_group_id: str = ""
    user_data: Optional[str] = None
