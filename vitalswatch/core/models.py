from datetime import datetime
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

from vitalswatch.utils.time import get_current_datetime


class ServerTarget(BaseModel):
    """
    A monitored server, identified by name and polling URL.

    The name is used as the `server` tag in the store and is not required
    to be unique.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "name": "web-01",
                "url": "http://web-01.internal:3000/vitals"
            }
        }
    )

    name: StrictStr = Field(..., description="Server name, used as the store tag")
    url: StrictStr = Field(..., description="URL of the vitals-glimpse endpoint")


class VitalsDocument(BaseModel):
    """
    Status document served by a vitals-glimpse endpoint.

    Only the fields that are stored or validated are declared; the
    `*_status` strings and any other keys are ignored.
    """

    model_config = ConfigDict(
        frozen=True,
        extra='ignore',
        allow_inf_nan=False,
        json_schema_extra={
            "example": {
                "title": "vitals-glimpse",
                "version": 0.2,
                "mem_status": "mem_okay",
                "mem_percent": 46,
                "disk_status": "disk_okay",
                "disk_percent": 79,
                "cpu_status": "cpu_okay",
                "cpu_percent": 0
            }
        }
    )

    EXPECTED_TITLE: ClassVar[str] = "vitals-glimpse"
    MIN_VERSION: ClassVar[float] = 0.2

    title: StrictStr
    version: float
    mem_percent: StrictInt
    disk_percent: StrictInt
    cpu_percent: StrictInt

    @field_validator('version', mode='before')
    @classmethod
    def validate_version(cls, v):
        """Accept any JSON number, reject strings and booleans"""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("version must be a number")
        return v

    def is_supported_version(self) -> bool:
        return self.version >= self.MIN_VERSION

    def has_expected_title(self) -> bool:
        return self.title == self.EXPECTED_TITLE


class MetricPoint(BaseModel):
    """Single timestamped measurement written to the store"""

    model_config = ConfigDict(frozen=True)

    MEASUREMENT: ClassVar[str] = "server_metrics"

    measurement: str = MEASUREMENT
    tags: dict[str, str]
    fields: dict[str, int]
    timestamp: datetime = Field(default_factory=get_current_datetime)

    @property
    def server(self) -> str:
        return self.tags["server"]

    @classmethod
    def from_vitals(cls, target: ServerTarget, vitals: VitalsDocument) -> 'MetricPoint':
        """Build the point for a validated document, stamped with the current time"""
        return cls(
            tags={"server": target.name},
            fields={
                "mem_percent": vitals.mem_percent,
                "disk_percent": vitals.disk_percent,
                "cpu_percent": vitals.cpu_percent
            },
            timestamp=get_current_datetime()
        )
