from postgirl.models.collection import Collection
from postgirl.models.request import Request, HttpMethod, BodyType

__all__ = [
    "Collection",
    "Request",
    "HttpMethod",
    "BodyType",
]
