"""
Cache Storage Exceptions

Domain-specific exceptions for cache storage operations.
Raised by storage areas and entry parsing, caught at the persistent tier boundary.
"""

from typing import Optional, Any, Dict


class CacheStorageException(Exception):
    """Base exception for cache storage errors.

    Storage areas raise this or its subclasses. The persistent tier
    converts them into tier errors; they never reach cache callers.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class CacheSerializationException(CacheStorageException):
    """Raised when an entry cannot be serialized or parsed."""

    def __init__(
        self,
        message: str = "Cache entry serialization failed",
        key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if key:
            details["key"] = key
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=message, error_code="CACHE_SERIALIZATION_ERROR", details=details
        )
        # Preserve exception context for debugging (exception chaining)
        if original_error:
            self.__cause__ = original_error


class CacheQuotaExceededException(CacheStorageException):
    """Raised when a write would exceed the storage quota."""

    def __init__(
        self,
        key: str,
        required_bytes: int,
        quota_bytes: int,
    ):
        super().__init__(
            message=(
                f"Storage quota exceeded writing '{key}' "
                f"({required_bytes} > {quota_bytes} bytes)"
            ),
            error_code="CACHE_QUOTA_EXCEEDED",
            details={
                "key": key,
                "required_bytes": required_bytes,
                "quota_bytes": quota_bytes,
            },
        )


class CacheStorageUnavailableException(CacheStorageException):
    """Raised when the backing store cannot be reached or is disabled."""

    def __init__(
        self,
        message: str = "Cache storage unavailable",
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=message, error_code="CACHE_STORAGE_UNAVAILABLE", details=details
        )
        if original_error:
            self.__cause__ = original_error
