# tests/test_backend.py

"""
OpenStackBackend 경계 테스트.

SDK 예외 분류와 SDK 객체 -> 모델 변환만 본다. Connection 은 MagicMock.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from openstack import exceptions as os_exc

from instance_orchestrator.core.errors import (
    BackendError,
    BackendNotFoundError,
    BackendRetryableError,
    is_not_found,
    is_retryable,
)
from instance_orchestrator.core.openstack.backend import OpenStackBackend, classify_sdk_error


@pytest.fixture
def conn() -> MagicMock:
    c = MagicMock()
    c.current_project_id = "proj-1"
    return c


@pytest.fixture
def os_backend(conn) -> OpenStackBackend:
    return OpenStackBackend(conn)


# ---------------------------------------------------------------------------
# error classification
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("status", [409, 429, 502, 503, 504])
def test_retryable_statuses(status):
    err = classify_sdk_error(os_exc.HttpException(message="busy", http_status=status), "delete port p-1")

    assert isinstance(err, BackendRetryableError)
    assert err.status_code == status
    assert is_retryable(err)


@pytest.mark.parametrize("status", [400, 403, 500])
def test_permanent_statuses(status):
    err = classify_sdk_error(os_exc.HttpException(message="nope", http_status=status), "create port")

    assert type(err) is BackendError
    assert not is_retryable(err)
    assert not is_not_found(err)


def test_not_found_is_classified_by_type_and_status():
    by_type = classify_sdk_error(os_exc.ResourceNotFound(message="gone"), "get server s-1")
    by_status = classify_sdk_error(os_exc.HttpException(message="gone", http_status=404), "get server s-1")

    assert isinstance(by_type, BackendNotFoundError)
    assert isinstance(by_status, BackendNotFoundError)
    assert is_not_found(by_type)


def test_sdk_errors_are_translated_with_operation_name(os_backend, conn):
    conn.network.delete_port.side_effect = os_exc.HttpException(message="port in use", http_status=409)

    with pytest.raises(BackendRetryableError, match="delete port p-1") as excinfo:
        os_backend.delete_port("p-1")

    assert isinstance(excinfo.value.__cause__, os_exc.HttpException)
    conn.network.delete_port.assert_called_once_with("p-1", ignore_missing=False)


# ---------------------------------------------------------------------------
# conversion
# ---------------------------------------------------------------------------
def test_list_ports_drops_empty_filters_and_converts(os_backend, conn):
    conn.network.ports.return_value = [
        SimpleNamespace(
            id="p-1",
            name="node-0",
            network_id="net-a",
            fixed_ips=[{"subnet_id": "subnet-a", "ip_address": "10.0.0.5"}],
            security_group_ids=["sg-web"],
            description=None,
        )
    ]

    found = os_backend.list_ports(name="node-0", network_id=None)

    conn.network.ports.assert_called_once_with(name="node-0")
    assert found[0].id == "p-1"
    assert found[0].fixed_ips[0].ip_address == "10.0.0.5"


def test_create_port_only_sends_set_fields(os_backend, conn):
    conn.network.create_port.return_value = SimpleNamespace(
        id="p-1", name="node-0", network_id="net-a", fixed_ips=[], security_group_ids=[], description=None
    )

    os_backend.create_port(name="node-0", network_id="net-a")

    conn.network.create_port.assert_called_once_with(name="node-0", network_id="net-a")


def test_get_server_converts_addresses(os_backend, conn):
    conn.compute.get_server.return_value = SimpleNamespace(
        id="s-1",
        name="node-0",
        status="ACTIVE",
        key_name="ops-key",
        access_ipv4=None,
        addresses={"private": [{"version": 4, "addr": "10.0.0.5", "OS-EXT-IPS:type": "fixed"}]},
    )

    server = os_backend.get_server("s-1")

    assert server.status == "ACTIVE"
    assert server.addresses["private"][0]["addr"] == "10.0.0.5"


def test_find_flavor_returns_none_when_missing(os_backend, conn):
    conn.compute.find_flavor.return_value = None

    assert os_backend.find_flavor("m1.huge") is None
    conn.compute.find_flavor.assert_called_once_with("m1.huge", ignore_missing=True)


def test_replace_trunk_tags(os_backend, conn):
    trunk = SimpleNamespace(id="t-1")
    conn.network.get_trunk.return_value = trunk

    os_backend.replace_trunk_tags("t-1", ["a", "b"])

    conn.network.set_tags.assert_called_once_with(trunk, ["a", "b"])


def test_extension_aliases(os_backend, conn):
    conn.network.extensions.return_value = [SimpleNamespace(alias="trunk"), SimpleNamespace(alias="qos")]

    assert os_backend.list_extension_aliases() == ["trunk", "qos"]


def test_project_id_comes_from_connection(os_backend):
    assert os_backend.project_id == "proj-1"
