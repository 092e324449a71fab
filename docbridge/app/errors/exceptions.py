"""
Exceptions used at the engine boundary.

Components return result records instead of raising. These exceptions
are reserved for two cases:

- StoreUnavailableError: a required collaborator is missing at
  construction time. It is raised to the caller.
- BridgeOperationError: a phase of an engine operation failed. It is
  raised inside the engine and converted to ErrorDetails before the
  operation returns.
"""

from typing import Optional

from docbridge.app.schemas.errors import OperationName


class StoreUnavailableError(RuntimeError):
    """
    A store collaborator required by the engine was not provided.
    """


class BridgeOperationError(RuntimeError):
    """
    A phase of a bridge operation failed.
    """

    def __init__(self, message: str, *, operation: Optional[OperationName] = None):
        super().__init__(message)
        self.operation = operation
