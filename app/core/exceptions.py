from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for errors raised by the domain services."""
    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    """A request was rejected before anything was written."""
    status_code = 422
    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        super().__init__(message, details={"field": field})
        self.field = field


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidTransitionError(AppError):
    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, entity: str, current: Optional[str], target: str):
        super().__init__(
            f"Invalid {entity} transition: {current} -> {target}",
            details={"entity": entity, "current": current, "target": target},
        )
        self.current = current
        self.target = target


class GatewayError(AppError):
    """The payment gateway could not be reached or answered with an error."""
    status_code = 502
    code = "GATEWAY_ERROR"
