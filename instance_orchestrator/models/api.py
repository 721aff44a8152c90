from pydantic import BaseModel

from instance_orchestrator.models.instance import Instance


class InstanceResponse(BaseModel):
    instance: Instance
    message: str


class DeleteResponse(BaseModel):
    ok: bool
    message: str
