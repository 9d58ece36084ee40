# vitalswatch/core/exceptions.py

from typing import TYPE_CHECKING, Any

from .enums import FetchErrorKind

if TYPE_CHECKING:
    from .models import MetricPoint, ServerTarget


class VitalswatchError(Exception):
    """Base exception for all application errors"""
    pass

class ConfigurationError(VitalswatchError):
    """Missing or invalid configuration, or an unusable server list"""
    pass

class FetchError(VitalswatchError):
    """
    A single poll of a single target failed.

    Never fatal: the target simply contributes no point for the cycle.
    """
    kind: FetchErrorKind | None = None

    def __init__(self, target: 'ServerTarget', message: str):
        super().__init__(message)
        self.target = target

    def __str__(self) -> str:
        label = self.kind.value if self.kind else "fetch"
        return f"{label} error for {self.target.name} ({self.target.url}): {self.args[0]}"

class NetworkError(FetchError):
    """Request could not be sent or no response arrived"""
    kind = FetchErrorKind.NETWORK

class BodyReadError(FetchError):
    """Response arrived but its body could not be read"""
    kind = FetchErrorKind.BODY_READ

class DecodeError(FetchError):
    """Body is not a well-formed vitals document"""
    kind = FetchErrorKind.DECODE

class IncompatibleVersionError(FetchError):
    """Document schema version is older than supported"""
    kind = FetchErrorKind.INCOMPATIBLE_VERSION

    def __init__(self, target: 'ServerTarget', got: float):
        super().__init__(target, f"unsupported document version {got}")
        self.got = got

class UnexpectedTitleError(FetchError):
    """Document was not produced by vitals-glimpse"""
    kind = FetchErrorKind.UNEXPECTED_TITLE

    def __init__(self, target: 'ServerTarget', got: Any):
        super().__init__(target, f"unexpected document title {got!r}")
        self.got = got

class WriteError(VitalswatchError):
    """
    Asynchronous failure to deliver a point to the store.

    Delivered on the sink error stream after the fact, never raised to writers.
    """

    def __init__(self, message: str, point: 'MetricPoint | None' = None, cause: BaseException | None = None):
        super().__init__(message)
        self.point = point
        self.cause = cause
