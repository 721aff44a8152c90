# instance_orchestrator/config/settings.py
from typing import Any, List, Optional

from pydantic import AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings

from instance_orchestrator.models.instance import ClusterDefaults

DEFAULT_INSTANCE_CREATE_TIMEOUT_MINUTES = 5


class Settings(BaseSettings):
    # 일반
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    CLUSTER_NAME: str = "default"

    # 클러스터 기본값 (요청에 네트워크/보안그룹이 없을 때)
    CLUSTER_TAGS: List[str] = []  # JSON 배열 문자열, 예: '["env:dev"]'
    CLUSTER_NETWORK_ID: Optional[str] = None
    CLUSTER_SUBNET_ID: Optional[str] = None
    CLUSTER_MANAGED_SECURITY_GROUPS: bool = False
    CLUSTER_CONTROL_PLANE_SECURITY_GROUP_ID: Optional[str] = None
    CLUSTER_WORKER_SECURITY_GROUP_ID: Optional[str] = None

    # OpenStack 인증 (OS_CLOUD 가 있으면 clouds.yaml 우선)
    OS_CLOUD: Optional[str] = None
    OS_AUTH_URL: Optional[AnyHttpUrl] = None
    OS_USERNAME: Optional[str] = None
    OS_PASSWORD: Optional[str] = None
    OS_PROJECT_NAME: Optional[str] = None
    OS_USER_DOMAIN_NAME: str = "Default"
    OS_PROJECT_DOMAIN_NAME: str = "Default"
    OS_REGION_NAME: str = "RegionOne"

    # 인스턴스 생성/삭제 대기
    OPENSTACK_INSTANCE_CREATE_TIMEOUT: int = DEFAULT_INSTANCE_CREATE_TIMEOUT_MINUTES  # 분 단위
    INSTANCE_STATUS_RETRY_INTERVAL: float = 10.0
    INSTANCE_DELETE_TIMEOUT: float = 300.0

    # trunk / port 삭제 폴링
    TRUNK_DELETE_RETRY_INTERVAL: float = 5.0
    TRUNK_DELETE_TIMEOUT: float = 180.0
    PORT_DELETE_RETRY_INTERVAL: float = 5.0
    PORT_DELETE_TIMEOUT: float = 180.0

    # 이벤트 알림(선택)
    EVENT_WEBHOOK_URL: Optional[AnyHttpUrl] = None
    EVENT_DEDUP_TTL: int = 600

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @field_validator("OPENSTACK_INSTANCE_CREATE_TIMEOUT", mode="before")
    @classmethod
    def _fallback_create_timeout(cls, value: Any) -> int:
        """숫자로 해석할 수 없는 값이면 기본값(5분)을 쓴다."""
        try:
            return int(value)
        except (TypeError, ValueError):
            return DEFAULT_INSTANCE_CREATE_TIMEOUT_MINUTES

    @property
    def instance_create_timeout_seconds(self) -> float:
        return float(self.OPENSTACK_INSTANCE_CREATE_TIMEOUT) * 60.0

    def cluster_defaults(self) -> ClusterDefaults:
        return ClusterDefaults(
            name=self.CLUSTER_NAME,
            tags=self.CLUSTER_TAGS,
            network_id=self.CLUSTER_NETWORK_ID,
            subnet_id=self.CLUSTER_SUBNET_ID,
            managed_security_groups=self.CLUSTER_MANAGED_SECURITY_GROUPS,
            control_plane_security_group_id=self.CLUSTER_CONTROL_PLANE_SECURITY_GROUP_ID,
            worker_security_group_id=self.CLUSTER_WORKER_SECURITY_GROUP_ID,
        )


def get_settings() -> Settings:
    """
    호출할 때마다 환경변수를 다시 읽는다.

    운영 중에 타임아웃/폴링 간격을 바꿔도 재배포 없이 다음 호출부터 반영된다.
    """
    return Settings()
