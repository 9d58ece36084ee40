from enum import Enum


class ServiceStatus(str, Enum):
    """Service statuses"""
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    ERROR = "error"


class FetchErrorKind(str, Enum):
    """Reasons a single poll can fail"""
    NETWORK = "network"
    BODY_READ = "body_read"
    DECODE = "decode"
    INCOMPATIBLE_VERSION = "incompatible_version"
    UNEXPECTED_TITLE = "unexpected_title"


class PollOutcome(str, Enum):
    """Outcome label used for poll accounting"""
    SUCCESS = "success"
    SKIPPED = "skipped"
    UNEXPECTED = "unexpected"
