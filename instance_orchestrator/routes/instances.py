# instance_orchestrator/routes/instances.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from instance_orchestrator.config.settings import get_settings
from instance_orchestrator.core.errors import (
    ConfigurationError,
    OrchestratorError,
    PollTimeoutError,
)
from instance_orchestrator.core.events import DiscordEventRecorder, EventRecorder, LoggingEventRecorder
from instance_orchestrator.core.openstack.backend import OpenStackBackend
from instance_orchestrator.core.openstack.client import get_connection
from instance_orchestrator.core.openstack.service import ComputeService
from instance_orchestrator.models.api import DeleteResponse, InstanceResponse
from instance_orchestrator.models.instance import InstanceCreateRequest

router = APIRouter()
logger = logging.getLogger(__name__)


def get_compute_service() -> ComputeService:
    """FastAPI dependency. 테스트에서는 dependency_overrides 로 교체한다."""
    settings = get_settings()
    events: EventRecorder = LoggingEventRecorder()
    if settings.EVENT_WEBHOOK_URL:
        events = DiscordEventRecorder(str(settings.EVENT_WEBHOOK_URL), dedup_ttl=settings.EVENT_DEDUP_TTL)
    return ComputeService(OpenStackBackend(get_connection(settings)), events=events)


def _to_http_error(exc: OrchestratorError) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, PollTimeoutError):
        return HTTPException(status_code=504, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))


@router.post("", response_model=InstanceResponse)
def create_instance(
    req: InstanceCreateRequest,
    service: ComputeService = Depends(get_compute_service),
) -> InstanceResponse:
    """
    머신 요청 + 클러스터 기본값(환경변수)으로 인스턴스를 만들고 ACTIVE 까지 기다린다.

    같은 이름으로 다시 호출하면 이전 호출에서 만든 port/trunk 를 재사용한다.
    """
    cluster = get_settings().cluster_defaults()
    try:
        instance = service.instance_create(req, cluster)
    except OrchestratorError as exc:
        logger.exception("Instance creation failed for %s", req.name)
        raise _to_http_error(exc)

    return InstanceResponse(
        instance=instance,
        message=f"Server created successfully: {instance.name} ({instance.state})",
    )


@router.get("", response_model=InstanceResponse)
def find_instance(
    name: str,
    service: ComputeService = Depends(get_compute_service),
) -> InstanceResponse:
    try:
        instance = service.find_instance_by_name(name)
    except OrchestratorError as exc:
        raise _to_http_error(exc)
    if instance is None:
        raise HTTPException(status_code=404, detail=f"Server not found: {name}")
    return InstanceResponse(instance=instance, message="ok")


@router.get("/{instance_id}", response_model=InstanceResponse)
def get_instance(
    instance_id: str,
    service: ComputeService = Depends(get_compute_service),
) -> InstanceResponse:
    try:
        instance = service.get_instance(instance_id)
    except OrchestratorError as exc:
        raise _to_http_error(exc)
    if instance is None:
        raise HTTPException(status_code=404, detail=f"Server not found: {instance_id}")
    return InstanceResponse(instance=instance, message="ok")


@router.delete("/{instance_id}", response_model=DeleteResponse)
def delete_instance(
    instance_id: str,
    name: Optional[str] = None,
    service: ComputeService = Depends(get_compute_service),
) -> DeleteResponse:
    try:
        service.delete_instance(instance_id, name=name)
    except OrchestratorError as exc:
        logger.exception("Instance deletion failed for %s", instance_id)
        raise _to_http_error(exc)

    return DeleteResponse(ok=True, message=f"Deleted {instance_id}")
