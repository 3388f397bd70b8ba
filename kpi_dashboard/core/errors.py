# kpi_dashboard/core/errors.py
# Failures raised by the remote bridge and the ingestion step.


class BridgeError(Exception):
    """Base class for every failure of a remote action."""

    def __init__(self, action: str, message: str):
        super().__init__(message)
        self.action = action
        self.message = message


class TransportError(BridgeError):
    """The request could not be delivered or its answer could not be read."""


class RemoteTimeoutError(TransportError, TimeoutError):
    """The host RPC call did not answer in time."""

    def __init__(self, action: str, seconds: float):
        super().__init__(action, f"Remote function {action} timed out after {seconds:g}s")
        self.seconds = seconds


class RemoteActionError(BridgeError):
    """The backend answered with status "error"."""


class DecodingError(ValueError):
    """A record from the backend could not be parsed."""

    def __init__(self, collection: str, record_id, detail: str):
        super().__init__(f"{collection}[{record_id}]: {detail}")
        self.collection = collection
        self.record_id = record_id
        self.detail = detail


class WorkflowError(ValueError):
    """A consumer request that cannot be applied to the current data."""
