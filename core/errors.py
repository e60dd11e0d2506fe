# core/errors.py
"""
Store error taxonomy shared by the Sheets client, the deal store, the API
client and the board controller.

Each error carries the HTTP status and failure category used by the
`{ "error": ... }` envelope rendered in main.py.
"""


class StoreError(Exception):
    """Base error for any failure talking to the spreadsheet store."""
    status_code = 500
    category = "unknown"

    def __init__(self, message: str = "Store error"):
        super().__init__(message)
        self.message = message


class StoreUnavailable(StoreError):
    """Transport/network failure or upstream 5xx."""
    status_code = 503
    category = "unavailable"


class StorePermissionDenied(StoreError):
    """The service account has no access to the spreadsheet."""
    status_code = 403
    category = "permission"


class StoreSchemaError(StoreError):
    """Expected sheet, range or columns are missing."""
    status_code = 404
    category = "schema-mismatch"


class StoreWriteError(StoreError):
    """A write was rejected by the store."""
    status_code = 500
    category = "unknown"


class DealNotFound(StoreWriteError):
    """The targeted row does not exist (or was already cleared)."""
    status_code = 404
    category = "not-found"


class StoreConflictError(StoreWriteError):
    """The row changed since the client read it (version mismatch)."""
    status_code = 409
    category = "conflict"


# Status code -> error class, used to rebuild errors from the JSON envelope
ERRORS_BY_STATUS = {
    403: StorePermissionDenied,
    404: DealNotFound,
    409: StoreConflictError,
    503: StoreUnavailable,
}


def error_from_status(status_code: int, message: str) -> StoreError:
    """Rebuilds the closest store error for an HTTP status code."""
    error_cls = ERRORS_BY_STATUS.get(status_code)
    if error_cls is None:
        error_cls = StoreWriteError if 400 <= status_code < 500 else StoreError
    return error_cls(message)


def write_error_from_validation(error) -> StoreWriteError:
    """Rejected deal fields (pydantic ValidationError) as a write error."""
    parts = []
    for err in error.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        parts.append(f"{location}: {err.get('msg')}" if location else err.get("msg", ""))
    return StoreWriteError("Invalid deal fields: " + "; ".join(parts))
