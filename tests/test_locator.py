# tests/test_locator.py

"""
ResourceLocator 단위 테스트.
"""

import pytest

from instance_orchestrator.core.errors import (
    AmbiguousImageError,
    ImageNotFoundError,
    NetworkNotFoundError,
    SecurityGroupNotFoundError,
)
from instance_orchestrator.models.instance import (
    NetworkFilter,
    NetworkParam,
    SecurityGroupParam,
    ServerNetwork,
    SubnetParam,
)


def test_resolve_image_id(locator):
    assert locator.resolve_image_id("ubuntu-22.04") == "img-1"


def test_empty_image_name_resolves_to_empty_reference(locator, backend):
    assert locator.resolve_image_id("") == ""
    assert "list_images" not in backend.call_names()


def test_missing_image_is_an_error(locator):
    with pytest.raises(ImageNotFoundError, match="no image with the name centos"):
        locator.resolve_image_id("centos")


def test_ambiguous_image_is_an_error(locator, backend):
    backend.add_image("img-2", "ubuntu-22.04")
    with pytest.raises(AmbiguousImageError):
        locator.resolve_image_id("ubuntu-22.04")


def test_security_group_not_found_is_hard_error(locator):
    """못 찾은 security group 은 건너뛰지 않고 에러."""
    with pytest.raises(SecurityGroupNotFoundError, match="security group db not found"):
        locator.resolve_security_groups([SecurityGroupParam(name="web"), SecurityGroupParam(name="db")])


def test_security_groups_are_deduplicated(locator):
    ids = locator.resolve_security_groups([SecurityGroupParam(name="web"), SecurityGroupParam(uuid="sg-web")])
    assert ids == ["sg-web"]


def test_security_group_lookup_defaults_to_current_project(locator, backend):
    backend.add_security_group("sg-other", "shared", project_id="proj-2")
    with pytest.raises(SecurityGroupNotFoundError):
        locator.resolve_security_groups([SecurityGroupParam(name="shared")])


def test_resolve_networks_by_uuid_and_filter(locator):
    nets = locator.resolve_server_networks(
        [NetworkParam(uuid="net-a"), NetworkParam(filter=NetworkFilter(name="private-b"))]
    )
    assert nets == [ServerNetwork(id="net-a"), ServerNetwork(id="net-b")]


def test_resolve_networks_with_subnets(locator):
    nets = locator.resolve_server_networks(
        [NetworkParam(uuid="net-a", subnets=[SubnetParam(uuid="subnet-a")])]
    )
    assert nets == [ServerNetwork(id="net-a", subnet_id="subnet-a")]


def test_network_filter_without_match_is_an_error(locator):
    """0개의 네트워크로 해석되는 요청은 빈 결과가 아니라 에러."""
    with pytest.raises(NetworkNotFoundError):
        locator.resolve_server_networks([NetworkParam(filter=NetworkFilter(name="missing"))])


def test_subnet_filter_without_match_is_an_error(locator):
    with pytest.raises(NetworkNotFoundError):
        locator.resolve_server_networks(
            [NetworkParam(uuid="net-a", subnets=[SubnetParam(uuid="subnet-b")])]
        )


def test_has_trunk_support(locator, backend):
    assert locator.has_trunk_support()
    backend.extensions = []
    assert not locator.has_trunk_support()


def test_find_servers_uses_exact_name_match(locator, backend):
    backend.add_server("s-1", "node-0")
    backend.add_server("s-2", "node-01")

    assert [s.id for s in locator.find_servers("node-0")] == ["s-1"]
