"""Service-layer errors; each maps to one HTTP status in app.main."""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    status_code: int = 500

    def __init__(self, message: str, code: str = "SERVICE_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class BadRequestError(ServiceError):
    """Malformed or invalid input shape."""

    status_code = 400

    def __init__(self, message: str = "Invalid input", code: str = "BAD_REQUEST") -> None:
        super().__init__(message=message, code=code)


class UnauthorizedError(ServiceError):
    """No, invalid or expired session, or bad local credentials."""

    status_code = 401

    def __init__(self, message: str = "Not authenticated", code: str = "UNAUTHORIZED") -> None:
        super().__init__(message=message, code=code)


class ForbiddenError(ServiceError):
    """Authenticated but the role does not reach the required tier."""

    status_code = 403

    def __init__(self, message: str = "Access denied", code: str = "FORBIDDEN") -> None:
        super().__init__(message=message, code=code)


class NotFoundError(ServiceError):
    """Resource not found error."""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: object) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            message=f"{resource_type} with ID {resource_id} not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
        )


class UserNotFoundError(NotFoundError):
    """User not found error."""

    def __init__(self, user_id: int) -> None:
        super().__init__("User", user_id)


class ConflictError(ServiceError):
    """Uniqueness violation or a state transition that is no longer allowed."""

    status_code = 409

    def __init__(self, message: str, code: str = "CONFLICT") -> None:
        super().__init__(message=message, code=code)


class UnavailableError(ServiceError):
    """The user store could not be reached in time."""

    status_code = 503

    def __init__(
        self, message: str = "User store unavailable", code: str = "STORE_UNAVAILABLE"
    ) -> None:
        super().__init__(message=message, code=code)
