"""
AddonDepot - Custom Exceptions
"""
import structlog

logger = structlog.get_logger('exceptions')


class AddonDepotException(Exception):
    """Base exception for AddonDepot"""
    def __init__(self, message: str, code: str = "ADDONDEPOT_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self):
        return {
            'error': True,
            'code': self.code,
            'message': self.message
        }


class DatabaseException(AddonDepotException):
    """Database-related exceptions"""
    def __init__(self, message: str):
        super().__init__(message, code="DATABASE_ERROR")
        logger.error(f"Database error: {message}")


class FileException(AddonDepotException):
    """File-related exceptions"""
    def __init__(self, message: str):
        super().__init__(message, code="FILE_ERROR")
        logger.error(f"File error: {message}")


class ValidationException(AddonDepotException):
    """Validation-related exceptions"""
    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")
        logger.warning(f"Validation error: {message}")


class AuthenticationException(AddonDepotException):
    """Authentication-related exceptions"""
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="AUTH_ERROR")
        logger.warning(f"Authentication error: {message}")


class AuthorizationException(AddonDepotException):
    """Authorization-related exceptions"""
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, code="FORBIDDEN")
        logger.warning(f"Authorization error: {message}")


class NotFoundException(AddonDepotException):
    """Addon, revision or file record does not exist"""
    def __init__(self, message: str):
        super().__init__(message, code="NOT_FOUND")
        logger.info(f"Not found: {message}")


class ConsistencyException(AddonDepotException):
    """The operation would break an add-on invariant"""
    def __init__(self, message: str):
        super().__init__(message, code="CONSISTENCY_ERROR")
        logger.warning(f"Consistency error: {message}")
