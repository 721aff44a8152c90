from typing import Optional


class OrchestratorError(RuntimeError):
    """Base class for every error raised by the orchestrator."""
    pass


# ---------------------------------------------------------------------------
# Configuration errors: 재시도하지 않고 바로 호출자에게 올린다.
# ---------------------------------------------------------------------------
class ConfigurationError(OrchestratorError):
    """Instance request cannot be satisfied as configured."""
    pass


class MissingFailureDomainError(ConfigurationError):
    pass


class ImageNotFoundError(ConfigurationError):
    pass


class AmbiguousImageError(ConfigurationError):
    pass


class FlavorNotFoundError(ConfigurationError):
    pass


class SecurityGroupNotFoundError(ConfigurationError):
    pass


class NetworkNotFoundError(ConfigurationError):
    pass


class NoFixedIPOnSubnetError(ConfigurationError):
    def __init__(self, subnet_id: str):
        self.subnet_id = subnet_id
        super().__init__(f"no ports with fixed IPs found on subnet {subnet_id!r}")


class TrunkNotSupportedError(ConfigurationError):
    pass


# ---------------------------------------------------------------------------
# Backend errors: backend 경계에서 분류된 결과를 그대로 신뢰한다.
# ---------------------------------------------------------------------------
class BackendError(OrchestratorError):
    """Backend call failed permanently."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class BackendNotFoundError(BackendError):
    """Backend reported that the resource does not exist."""
    pass


class BackendRetryableError(BackendError):
    """Transient backend failure (conflict, throttling, unavailable)."""
    pass


class AddressParseError(BackendError):
    """Server addresses 응답 형식이 예상과 다름."""
    pass


def is_not_found(exc: BaseException) -> bool:
    return isinstance(exc, BackendNotFoundError)


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, BackendRetryableError)


# ---------------------------------------------------------------------------
# Operation errors
# ---------------------------------------------------------------------------
class OperationError(OrchestratorError):
    """A backend mutation failed; names the operation and the resource."""

    def __init__(self, operation: str, resource_id: str, cause: BaseException):
        self.operation = operation
        self.resource_id = resource_id
        self.cause = cause
        super().__init__(f"{operation} {resource_id}: {cause}")


class InstanceCreateError(OperationError):
    pass


class PortCreateError(OperationError):
    pass


class TrunkCreateError(OperationError):
    pass


class TrunkTagError(OperationError):
    """Trunk exists but could not be labeled. created: 이번 호출에서 만든 trunk 인지."""

    def __init__(self, operation: str, resource_id: str, cause: BaseException, *, created: bool = False):
        self.created = created
        super().__init__(operation, resource_id, cause)


class DeleteError(OperationError):
    pass


class PollTimeoutError(OrchestratorError):
    """Polling deadline exceeded. 마지막 일시 오류가 아니라 리소스 id를 보고한다."""

    def __init__(self, operation: str, resource_id: str, timeout: float):
        self.operation = operation
        self.resource_id = resource_id
        self.timeout = timeout
        super().__init__(
            f"timed out after {timeout:g}s waiting for {operation} of {resource_id}"
        )


class CleanupError(OrchestratorError):
    """
    Compensating cleanup failed after a creation step failed.

    원래 에러와 정리 실패 에러를 모두 들고 있어서, 호출자가 리소스 상태가
    어긋났을 수 있다는 것을 알 수 있다.
    """

    def __init__(self, original: BaseException, cleanup: BaseException):
        self.original = original
        self.cleanup = cleanup
        super().__init__(f"{original}: error cleaning up ports: {cleanup}")
