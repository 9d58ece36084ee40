from dataclasses import dataclass
import os
from dotenv import load_dotenv

from .exceptions import ConfigurationError


@dataclass
class InfluxConfig:
    """InfluxDB connection settings"""
    url: str
    org: str
    bucket: str
    token: str
    queue_size: int = 10000

    def __post_init__(self) -> None:
        """Validate InfluxDB configuration"""
        for name in ('url', 'org', 'bucket', 'token'):
            if not getattr(self, name):
                raise ConfigurationError(f"InfluxDB {name} must be specified")
        if self.queue_size <= 0:
            raise ConfigurationError("Sink queue size must be positive")

    def __repr__(self) -> str:
        return (f"InfluxConfig(url={self.url!r}, org={self.org!r}, "
                f"bucket={self.bucket!r}, queue_size={self.queue_size})")

@dataclass
class PollingConfig:
    """Polling schedule and target settings"""
    interval_minutes: int
    servers_file: str = "data/servers.json"
    request_timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate polling configuration"""
        if self.interval_minutes <= 0:
            raise ConfigurationError("Polling interval must be a positive number of minutes")
        if self.request_timeout <= 0:
            raise ConfigurationError("Request timeout must be positive")
        if not self.servers_file:
            raise ConfigurationError("Servers file must be specified")

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60

@dataclass
class LogConfig:
    """Logging configuration"""
    level: str = "INFO"
    directory: str = "logs"
    metrics_port: int | None = None

    def __post_init__(self) -> None:
        if self.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError(f"Invalid log level '{self.level}'")
        if self.metrics_port is not None and not 0 < self.metrics_port < 65536:
            raise ConfigurationError(f"Invalid metrics port {self.metrics_port}")


def _require(name: str, fallback: str | None = None) -> str:
    """Read a required variable, trying the short fallback name if unset"""
    value = os.getenv(name, '').strip()
    if not value and fallback:
        value = os.getenv(fallback, '').strip()
    if not value:
        raise ConfigurationError(f"Missing required environment variable {name}")
    return value


class Config:
    """Application configuration"""

    def __init__(self):
        # Load environment variables
        load_dotenv()

        self.influx = self._init_influx_config()
        self.polling = self._init_polling_config()
        self.logging = self._init_log_config()

    def _init_influx_config(self) -> InfluxConfig:
        """Initialize InfluxDB configuration"""
        org = _require('INFLUXDB_ORG', 'ORG')
        bucket = _require('INFLUXDB_BUCKET', 'BUCKET')
        token = _require('INFLUXDB_ADMIN_TOKEN', 'TOKEN')
        url = _require('INFLUXDB_URL', 'STORE_URL')
        try:
            queue_size = int(os.getenv('SINK_QUEUE_SIZE', '10000'))
        except ValueError as e:
            raise ConfigurationError(f"Invalid SINK_QUEUE_SIZE: {e}")
        return InfluxConfig(url=url, org=org, bucket=bucket, token=token, queue_size=queue_size)

    def _init_polling_config(self) -> PollingConfig:
        """Initialize polling configuration"""
        interval = _require('POLLING_INTERVAL_MINUTES')
        try:
            interval_minutes = int(interval)
        except ValueError:
            raise ConfigurationError(f"Error parsing POLLING_INTERVAL_MINUTES: {interval!r} is not an integer")
        try:
            request_timeout = float(os.getenv('REQUEST_TIMEOUT_SECONDS', '30'))
        except ValueError as e:
            raise ConfigurationError(f"Invalid REQUEST_TIMEOUT_SECONDS: {e}")
        return PollingConfig(
            interval_minutes=interval_minutes,
            servers_file=os.getenv('SERVERS_FILE', 'data/servers.json'),
            request_timeout=request_timeout
        )

    def _init_log_config(self) -> LogConfig:
        """Initialize logging configuration"""
        metrics_port = os.getenv('METRICS_PORT')
        try:
            return LogConfig(
                level=os.getenv('LOG_LEVEL', 'INFO'),
                directory=os.getenv('LOG_DIR', 'logs'),
                metrics_port=int(metrics_port) if metrics_port else None
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid logging configuration: {e}")
