# instance_orchestrator/core/openstack/client.py
from functools import lru_cache
from typing import NamedTuple, Optional

from openstack import connection

from instance_orchestrator.config.settings import Settings, get_settings


class OpenStackConfigError(RuntimeError):
    """OS_* 설정이 빠졌거나 잘못된 경우."""


class _Credentials(NamedTuple):
    auth_url: str
    username: str
    password: str
    project_name: str
    user_domain_name: str
    project_domain_name: str
    region_name: str


def credentials_from(settings: Settings) -> _Credentials:
    missing = [
        key
        for key in ("OS_AUTH_URL", "OS_USERNAME", "OS_PASSWORD", "OS_PROJECT_NAME")
        if not getattr(settings, key)
    ]
    if missing:
        raise OpenStackConfigError(f"Missing OpenStack settings: {', '.join(missing)}")
    return _Credentials(
        auth_url=str(settings.OS_AUTH_URL),
        username=settings.OS_USERNAME,
        password=settings.OS_PASSWORD,
        project_name=settings.OS_PROJECT_NAME,
        user_domain_name=settings.OS_USER_DOMAIN_NAME,
        project_domain_name=settings.OS_PROJECT_DOMAIN_NAME,
        region_name=settings.OS_REGION_NAME,
    )


@lru_cache
def _cloud_connection(cloud: str) -> connection.Connection:
    return connection.Connection(cloud=cloud)


@lru_cache
def _password_connection(creds: _Credentials) -> connection.Connection:
    return connection.Connection(
        compute_api_version="2",
        identity_interface="public",
        **creds._asdict(),
    )


def get_connection(settings: Optional[Settings] = None) -> connection.Connection:
    """
    Settings 로부터 OpenStack 연결을 얻는다.

    OS_CLOUD 가 있으면 clouds.yaml 을 쓰고, 없으면 OS_AUTH_URL 등 개별 설정으로 붙는다.
    같은 설정이면 연결 객체를 재사용한다.
    """
    settings = settings or get_settings()
    if settings.OS_CLOUD:
        return _cloud_connection(settings.OS_CLOUD)
    return _password_connection(credentials_from(settings))
