class SmartImportError(Exception):
    """Base class for Smart Import failures."""


class SourceFileError(SmartImportError):
    """Uploaded file cannot be read or yields no transactions. Aborts the session."""


class StoreError(SmartImportError):
    """Persistence service failure."""


class ConstraintViolation(StoreError):
    """A write violated a uniqueness or check constraint."""


class OrderCreationError(SmartImportError):
    """Downstream order creation failed."""
