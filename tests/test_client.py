# tests/test_client.py

"""
Settings -> OpenStack 연결 생성 테스트. Connection 생성자는 가짜로 바꿔 끼운다.
"""

import pytest

from instance_orchestrator.config.settings import Settings
from instance_orchestrator.core.openstack import client


@pytest.fixture
def connections(monkeypatch):
    for key in ("OS_CLOUD", "OS_AUTH_URL", "OS_USERNAME", "OS_PASSWORD", "OS_PROJECT_NAME", "OS_REGION_NAME"):
        monkeypatch.delenv(key, raising=False)
    created = []

    def _fake_connection(**kwargs):
        created.append(kwargs)
        return object()

    monkeypatch.setattr(client.connection, "Connection", _fake_connection)
    client._cloud_connection.cache_clear()
    client._password_connection.cache_clear()
    yield created
    client._cloud_connection.cache_clear()
    client._password_connection.cache_clear()


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_os_cloud_takes_precedence(connections):
    client.get_connection(_settings(OS_CLOUD="devstack", OS_USERNAME="admin"))

    assert connections == [{"cloud": "devstack"}]


def test_password_auth_from_settings(connections):
    settings = _settings(
        OS_AUTH_URL="http://keystone.local:5000/v3",
        OS_USERNAME="admin",
        OS_PASSWORD="secret",
        OS_PROJECT_NAME="demo",
        OS_REGION_NAME="RegionTwo",
    )

    first = client.get_connection(settings)
    second = client.get_connection(settings)

    assert first is second
    assert len(connections) == 1
    kwargs = connections[0]
    assert kwargs["auth_url"].startswith("http://keystone.local:5000/v3")
    assert kwargs["username"] == "admin"
    assert kwargs["project_name"] == "demo"
    assert kwargs["user_domain_name"] == "Default"
    assert kwargs["region_name"] == "RegionTwo"


def test_missing_credentials_are_reported(connections):
    with pytest.raises(client.OpenStackConfigError, match="OS_PASSWORD, OS_PROJECT_NAME"):
        client.get_connection(_settings(OS_AUTH_URL="http://keystone.local:5000/v3", OS_USERNAME="admin"))

    assert connections == []
