"""Custom exceptions for PropViz"""

class PropVizException(Exception):
    """Base exception for PropViz"""
    status_code = 400

class ValidationError(PropVizException):
    """Raised when input validation fails"""
    status_code = 400

class AuthenticationError(PropVizException):
    """Raised when authentication fails"""
    status_code = 401

class NotFoundError(PropVizException):
    """Raised when a user, shape or history entry does not exist"""
    status_code = 404

class ConflictError(PropVizException):
    """Raised when a record already exists"""
    status_code = 409

class PayloadTooLargeError(PropVizException):
    """Raised when an upload exceeds the size limit"""
    status_code = 413

class ConfigurationError(PropVizException):
    """Raised when configuration is invalid"""
    status_code = 500

class UserDirectoryError(PropVizException):
    """Raised when the users table cannot be read or written"""
    status_code = 500

class GeocodingError(PropVizException):
    """Raised when the geocoding API fails"""
    status_code = 502

class StorageError(PropVizException):
    """Raised when object storage upload or download fails"""
    status_code = 502

class GenerationError(PropVizException):
    """Raised when every image generation provider fails"""
    status_code = 502
