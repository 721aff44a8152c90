# tests/conftest.py

"""
pytest 설정 및 공통 fixture.
"""

import sys
from pathlib import Path

import pytest

# 프로젝트 루트를 PYTHONPATH에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

from fakes import FakeBackend, FakeClock  # noqa: E402

from instance_orchestrator.config.settings import Settings  # noqa: E402
from instance_orchestrator.core.events import MemoryEventRecorder  # noqa: E402
from instance_orchestrator.core.openstack.locator import ResourceLocator  # noqa: E402
from instance_orchestrator.core.openstack.ports import PortProvisioner  # noqa: E402
from instance_orchestrator.core.openstack.provisioner import InstanceProvisioner  # noqa: E402
from instance_orchestrator.core.openstack.service import ComputeService  # noqa: E402
from instance_orchestrator.core.openstack.teardown import InstanceTeardown  # noqa: E402
from instance_orchestrator.core.openstack.trunks import TrunkProvisioner  # noqa: E402
from instance_orchestrator.core.polling import Waiter  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def waiter(clock: FakeClock) -> Waiter:
    return Waiter(sleep=clock.sleep, clock=clock.time)


@pytest.fixture
def backend() -> FakeBackend:
    b = FakeBackend()
    b.add_network("net-a", "private-a", subnets=["subnet-a"])
    b.add_network("net-b", "private-b", subnets=["subnet-b"])
    b.add_image("img-1", "ubuntu-22.04")
    b.add_flavor("flv-1", "m1.small")
    b.add_security_group("sg-web", "web")
    return b


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, CLUSTER_NAME="test-cluster")


@pytest.fixture
def locator(backend: FakeBackend) -> ResourceLocator:
    return ResourceLocator(backend)


@pytest.fixture
def ports(backend: FakeBackend, locator: ResourceLocator, waiter: Waiter) -> PortProvisioner:
    return PortProvisioner(backend, locator, cluster_name="test-cluster", waiter=waiter)


@pytest.fixture
def trunks(backend: FakeBackend, locator: ResourceLocator, waiter: Waiter) -> TrunkProvisioner:
    return TrunkProvisioner(backend, locator, waiter=waiter)


@pytest.fixture
def provisioner(backend, locator, ports, trunks, waiter) -> InstanceProvisioner:
    return InstanceProvisioner(
        backend, locator, ports, trunks,
        create_timeout=300.0,
        status_interval=10.0,
        waiter=waiter,
    )


@pytest.fixture
def teardown(backend, locator, ports, trunks) -> InstanceTeardown:
    return InstanceTeardown(backend, locator, ports, trunks)


@pytest.fixture
def events() -> MemoryEventRecorder:
    return MemoryEventRecorder()


@pytest.fixture
def service(backend, settings, events, waiter) -> ComputeService:
    return ComputeService(backend, settings=settings, events=events, waiter=waiter)
