class ServiceError(Exception):
    status = 500

    def __init__(self, code="SERVICE_ERROR", message="Service error", details=None, status=None):
        self.code = code
        self.message = message
        self.details = details or {}
        if status is not None:
            self.status = status
        super().__init__(message)


class Unauthorized(ServiceError):
    status = 401

    def __init__(self, message="Authentication required", details=None):
        super().__init__("UNAUTHORIZED", message, details)


class Forbidden(ServiceError):
    status = 403

    def __init__(self, message="Admin access required", details=None):
        super().__init__("FORBIDDEN", message, details)


class NotFound(ServiceError):
    status = 404

    def __init__(self, message="Resource not found", details=None, code="NOT_FOUND"):
        super().__init__(code, message, details)


class UserNotFound(NotFound):
    def __init__(self, user_id=None):
        super().__init__("User not found", {"user_id": user_id}, code="USER_NOT_FOUND")


class InvalidState(ServiceError):
    status = 400

    def __init__(self, message, details=None):
        super().__init__("INVALID_STATE", message, details)


class ValidationError(ServiceError):
    status = 400

    def __init__(self, message, details=None, code="VALIDATION_ERROR"):
        super().__init__(code, message, details)


class InsufficientFunds(ValidationError):
    def __init__(self, balance, requested):
        super().__init__(
            f"Insufficient balance. Current balance: {balance}, requested: {requested}",
            {"balance": str(balance), "requested": str(requested)},
            code="INSUFFICIENT_FUNDS",
        )


class PersistenceConflict(ServiceError):
    status = 409

    def __init__(self, message="Balance changed concurrently, retry the operation", details=None):
        super().__init__("PERSISTENCE_CONFLICT", message, details)
