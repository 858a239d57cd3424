"""
Analysis backend integration.

Components:
    rest: BackendRestClient, the aiohttp implementation of AnomalySource
    normalizer: BackendNormalizer converting JSON payloads to models
"""

from flightwatch.backend.normalizer import BackendNormalizer
from flightwatch.backend.rest import BackendRestClient

__all__ = [
    "BackendNormalizer",
    "BackendRestClient",
]
