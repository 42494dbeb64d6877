"""Errors raised by vector store backends."""
from __future__ import annotations


class VectorStoreUnavailableError(RuntimeError):
    """The backend could not be initialised, written to, queried or cleared.

    ``namespace`` and ``operation`` are set when the failure concerns one
    namespace; the backend error is chained as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        *,
        cause: Exception | None = None,
        namespace: str | None = None,
        operation: str | None = None,
    ) -> None:
        if namespace:
            message = f"{message} (namespace={namespace})"
        super().__init__(message)
        self.namespace = namespace
        self.operation = operation
        self.__cause__ = cause
