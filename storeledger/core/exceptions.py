class LedgerError(Exception):
    """Base exception for stock ledger errors."""

    status_code = 500
    default_message = "An error occurred in the stock ledger"

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or self.default_message
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            "type": self.status_code,
            "error": self.__class__.__name__,
            "message": self.message,
        }

        if self.code:
            error_dict["code"] = self.code

        if self.details:
            error_dict["details"] = self.details

        return error_dict


class ValidationError(LedgerError):
    """Malformed, missing or zero-valued input. Raised before any storage access."""

    status_code = 400
    default_message = "Validation error"


class NotFoundError(LedgerError):
    """Referenced item, unit, store or inventory record is absent."""

    status_code = 404
    default_message = "Not found"


class ForbiddenError(LedgerError):
    status_code = 403
    default_message = "Forbidden"


class ScopeForbiddenError(ForbiddenError):
    """Target store lies outside the principal's resolved scope."""

    default_message = "Store is outside your scope"


class PermissionDeniedError(ForbiddenError):
    """The principal's role may not perform the operation or touch the field."""

    default_message = "Not allowed"


class ConflictError(LedgerError):
    """Uniqueness violation."""

    status_code = 409
    default_message = "Conflict"


class InsufficientStockError(LedgerError):
    """An adjustment would take the stored quantity below zero.

    Raised inside the unit of work; callers composing a larger transaction
    must let it propagate so the whole transaction rolls back.
    """

    status_code = 409
    default_message = "Insufficient stock"

    def __init__(self, item_id, store_id, available, requested, message=None):
        self.item_id = item_id
        self.store_id = store_id
        self.available = available
        self.requested = requested
        message = message or (
            f"Insufficient stock for item {item_id} in store {store_id}. "
            f"Available={available} requested={requested}"
        )
        super().__init__(
            message,
            code="INSUFFICIENT_STOCK",
            details={
                "item_id": str(item_id),
                "store_id": str(store_id),
                "available": available,
                "requested": requested,
            },
        )


class UnitIntegrityError(LedgerError):
    """A unit of measurement carries a non-positive conversion factor."""

    status_code = 500
    default_message = "Conversion factor must be positive and non-zero"


class InternalError(LedgerError):
    status_code = 500
    default_message = "Internal Server Error"
