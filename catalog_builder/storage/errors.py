"""
Errors raised by the storage and persistence gateways.
"""

from typing import Optional


class GatewayError(Exception):
    """
    A call to the object store or the document backend failed.

    Args:
        operation: Short name of the failed call, e.g. "list_all_folders"
        message: Human readable cause
        cause: Underlying botocore/requests exception, if any
    """

    def __init__(self, operation: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.cause = cause
