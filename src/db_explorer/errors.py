class ConfigError(ValueError):
    """Configuration is missing or invalid."""


class CatalogError(RuntimeError):
    """Schema discovery failed at startup."""


class ApiError(RuntimeError):
    """Request failed in a user-facing way."""

    status_code = 500
    default_message = "internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class BadRequest(ApiError):
    """Malformed path or request body."""

    status_code = 400
    default_message = "bad request"


class InvalidFieldType(BadRequest):
    """Supplied value does not fit the column it targets."""

    def __init__(self, field: str) -> None:
        super().__init__(f"field {field} have invalid type")
        self.field = field


class UnknownTable(ApiError):
    """Requested table is not part of the catalog."""

    status_code = 404
    default_message = "unknown table"


class RecordNotFound(ApiError):
    """No row matches the requested id."""

    status_code = 404
    default_message = "record not found"


class RouteNotFound(ApiError):
    """No routing rule matches the method and path."""

    status_code = 404
    default_message = "unknown route"


class CastingError(ApiError):
    """A scanned cell could not be converted to its column type."""

    default_message = "casting type error"


class QueryError(ApiError):
    """Query execution failed in a user-facing way."""
