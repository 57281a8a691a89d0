"""Blocking wait on Exoscale asynchronous operations."""

from .errors import APIError, OperationFailed
from .types import Operation, OperationState


def wait_for_operation(session, operation: Operation) -> str | None:
    """Block until ``operation`` leaves the pending state.

    Polling is left to the client's own ``wait``, which backs off and
    tolerates a few server errors in a row. There is no client-side timeout.

    :param session: Session over the Exoscale client
    :param operation: Operation returned by a mutating call
    :return: Id of the resource the operation produced or acted on, if any
    :raises OperationFailed: If the operation ends in any state but success
    :raises APIError: If polling itself keeps failing
    """
    op_id = operation["id"]
    pending = OperationState.PENDING.value

    if operation.get("state", pending) == pending:
        try:
            operation = session.wait(operation_id=op_id)
        except APIError:
            # The client reports a failed operation without its reason.
            operation = session.get_operation(id=op_id)
            if operation.get("state") in (pending, OperationState.SUCCESS.value):
                raise

    if operation["state"] != OperationState.SUCCESS.value:
        raise OperationFailed(
            op_id,
            operation["state"],
            reason=operation.get("reason"),
            message=operation.get("message"),
        )

    reference = operation.get("reference") or {}
    return reference.get("id")
