"""Error taxonomy for reconciliation failures."""

from __future__ import annotations

import copy


class ReconcileError(Exception):
    """Base class for errors raised while reconciling a managed resource.

    Attributes:
        operation: Short description of the step that failed
        cause: The underlying exception, if any
        retryable: Whether the controller should schedule another attempt
    """

    retryable = True

    def __init__(self, message: str, operation: str | None = None, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.cause = cause

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class ProviderConnectionError(ReconcileError):
    """Credentials or the provider client could not be resolved."""


class NotFoundError(ReconcileError):
    """The external object does not exist."""


class ProviderAPIError(ReconcileError):
    """The provider API returned an error other than not-found."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        cause: BaseException | None = None,
        status: int | None = None,
    ):
        super().__init__(message, operation=operation, cause=cause)
        self.status = status


class DeadlineExceededError(ProviderAPIError):
    """The cycle deadline expired before or during a remote call."""


class TypeMismatchError(ReconcileError):
    """A reconciler was handed a resource of the wrong kind."""

    retryable = False


class PersistenceConflictError(ReconcileError):
    """A write to the resource store lost an optimistic concurrency race."""


def wrap_error(err: Exception, operation: str) -> ReconcileError:
    """Attach operation context to an error.

    Reconcile errors keep their type so retry semantics survive wrapping.
    Anything else becomes a ProviderAPIError.

    Args:
        err: Error to wrap
        operation: Name of the failed step

    Returns:
        A ReconcileError whose message reads "<operation>: <cause>"
    """
    if isinstance(err, ReconcileError):
        if err.operation is None:
            err.operation = operation
            return err
        if err.operation == operation:
            return err
        wrapped = copy.copy(err)
        wrapped.message = str(err)
        wrapped.operation = operation
        wrapped.cause = err
        return wrapped
    return ProviderAPIError(str(err), operation=operation, cause=err)
