"""Errors raised by the orchestration engine and its storage."""


class DataBreakerError(Exception):
    """Base class for engine errors."""


class RecordNotFound(DataBreakerError):
    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Record '{record_id}' not found")


class NoRecordsToDelete(DataBreakerError):
    def __init__(self, broker_id: str | None = None):
        self.broker_id = broker_id
        if broker_id is not None:
            message = f"No records found for broker '{broker_id}'"
        else:
            message = "No records found. Run a scan first."
        super().__init__(message)


class BrokerNotFound(DataBreakerError):
    def __init__(self, broker_id: str):
        self.broker_id = broker_id
        super().__init__(f"Broker '{broker_id}' not found")


class StorageFailure(DataBreakerError):
    """The backing store rejected or failed a read/write. Fatal for the current pass."""


class RegistryError(DataBreakerError):
    """The broker registry feed could not be fetched or understood."""
