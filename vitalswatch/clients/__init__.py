from .vitals import VitalsClient

__all__ = [
    'VitalsClient'
]
