"""
Logistics Service — Domain errors

Every workflow precondition failure is raised as one of these and translated
to the JSON error envelope by the handlers in logistics_service.core.errors.
"""


class DomainError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(DomainError):
    status_code = 400
    default_message = "Missing or malformed input."


class NotFoundError(DomainError):
    status_code = 404
    default_message = "Resource not found."


class ForbiddenError(DomainError):
    status_code = 403
    default_message = "You are not allowed to perform this action."


class ConflictError(DomainError):
    status_code = 400
    default_message = "The request conflicts with the current state."


class InvalidStateError(ConflictError):
    """A lifecycle transition was requested from a status that does not allow it."""

    def __init__(self, current: str, action: str):
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} a supply in status '{current}'.")


class InsufficientInventoryError(ConflictError):
    def __init__(self, product_id: str, available: float, requested: float):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient inventory for '{product_id}': "
            f"available={available:g}, requested={requested:g}"
        )
