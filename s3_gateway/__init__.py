"""Anonymous HTTP gateway serving the objects of a single S3 bucket.

The request path is used verbatim as the object key and every HTTP method is
answered as a GET.
"""

from .app import create_app
from .fetch import BotoObjectFetcher, Failed, Found, NotFound, ObjectMetadata
from .gateway import ProxyResponse, S3Gateway
from .settings import GatewaySettings

__all__ = [
    "BotoObjectFetcher",
    "Failed",
    "Found",
    "GatewaySettings",
    "NotFound",
    "ObjectMetadata",
    "ProxyResponse",
    "S3Gateway",
    "create_app",
]
