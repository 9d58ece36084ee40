from .influx import InfluxSink

__all__ = [
    'InfluxSink'
]
