"""Remote storage and document persistence gateways."""

from .documents import (
    FileDocumentStore,
    RestDocumentStore,
    S3DocumentStore,
    SaveAck,
    get_document_store,
)
from .errors import GatewayError
from .spaces import FolderResult, SpacesGateway, get_spaces_client

__all__ = [
    "FileDocumentStore",
    "RestDocumentStore",
    "S3DocumentStore",
    "SaveAck",
    "get_document_store",
    "GatewayError",
    "FolderResult",
    "SpacesGateway",
    "get_spaces_client",
]
