"""
Typed exception hierarchy for the stock kernel.

Every error has a typed class (catch by type, not message), a ``code``
class attribute (machine-readable, API-safe), and structured attributes
instead of context buried in the message string.

Only structural contract violations are raised.  Per-row anomalies such
as a missing unit cost, PAR or supplier are reported as data (``None``
values and remediation flags) and never surface here.

    StockKernelError (base)
    |
    +-- InvalidInputError
    |
    +-- ConfigError
    |   +-- ConfigLoadError
    |   +-- ConfigValidationError
    |
    +-- IngestionError
    |   +-- DocumentMappingError
    |
    +-- SnapshotNotFoundError
    |
    +-- ExportError

Category   | Code                     | When Raised
-----------|--------------------------|--------------------------------------------
Input      | INVALID_INPUT            | Engine received a non-sequence or a wrong element type
Config     | CONFIG_LOAD_FAILED       | Config file missing, unreadable or not a mapping
           | CONFIG_VALIDATION_FAILED | Config parsed but values are out of range
Ingestion  | DOCUMENT_MAPPING_FAILED  | Store document lacks the fields needed to build a DTO
Repository | SNAPSHOT_NOT_FOUND       | No snapshot data exists for the requested venue
Export     | EXPORT_FAILED            | Workbook could not be written
"""


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses must have a `code` class attribute for
    machine-readable error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Input contract exceptions


class InvalidInputError(StockKernelError):
    """
    An engine was called with structurally malformed input.

    Raised instead of silently returning an empty result, since an empty
    result is indistinguishable from a legitimately empty venue.
    """

    code: str = "INVALID_INPUT"

    def __init__(self, argument: str, expected: str, received: str):
        self.argument = argument
        self.expected = expected
        self.received = received
        super().__init__(
            f"Invalid input for '{argument}': expected {expected}, got {received}"
        )


# Configuration exceptions


class ConfigError(StockKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIG_ERROR"


class ConfigLoadError(ConfigError):
    """Configuration file could not be loaded."""

    code: str = "CONFIG_LOAD_FAILED"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load configuration from {path}: {reason}")


class ConfigValidationError(ConfigError):
    """Configuration was parsed but failed validation."""

    code: str = "CONFIG_VALIDATION_FAILED"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            "Configuration validation failed: " + "; ".join(self.errors)
        )


# Ingestion exceptions


class IngestionError(StockKernelError):
    """Base exception for ingestion errors."""

    code: str = "INGESTION_ERROR"


class DocumentMappingError(IngestionError):
    """A store document cannot be mapped to a kernel DTO."""

    code: str = "DOCUMENT_MAPPING_FAILED"

    def __init__(self, document_kind: str, reason: str, document_id: str | None = None):
        self.document_kind = document_kind
        self.reason = reason
        self.document_id = document_id
        where = f" {document_id}" if document_id else ""
        super().__init__(f"Cannot map {document_kind} document{where}: {reason}")


# Export exceptions


class ExportError(StockKernelError):
    """A report could not be exported."""

    code: str = "EXPORT_FAILED"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot export report to {path}: {reason}")


# Repository exceptions


class SnapshotNotFoundError(StockKernelError):
    """No snapshot data exists for the requested venue."""

    code: str = "SNAPSHOT_NOT_FOUND"

    def __init__(self, venue_id: str):
        self.venue_id = venue_id
        super().__init__(f"No snapshot data for venue {venue_id}")
