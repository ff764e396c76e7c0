"""Domain-specific exceptions — framework-independent."""


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class RecordShapeError(ValueError):
    """Raised when a record is in neither the current nor a recognized legacy shape.

    This is a data/programming error, not a transient one — callers should
    let it propagate.
    """

    def __init__(self, message: str, record_id: str | None = None):
        self.record_id = record_id
        prefix = f"Record '{record_id}': " if record_id else ""
        super().__init__(f"{prefix}{message}")


class RemoteStoreError(Exception):
    """Raised when the remote store cannot complete a request.

    ``status_code`` is the HTTP status, or 0 when the request never got a
    response (connection refused, timeout, DNS failure...).
    """

    def __init__(self, status_code: int, message: str, provider: str = "remote"):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {status_code}: {message}")

    @property
    def is_transport_error(self) -> bool:
        return self.status_code == 0


class StorageUnavailableError(Exception):
    """Raised by a local key-value store when the host denies persistence."""

    def __init__(self, operation: str, key: str | None = None, cause: Exception | None = None):
        self.operation = operation
        self.key = key
        self.cause = cause
        detail = f" ({cause})" if cause else ""
        super().__init__(f"Local storage {operation} failed for key '{key}'{detail}")
