"""
Operation results and the error taxonomy shared by all services.

Service code raises ServiceError; the returns_result decorator turns
every failure into an OperationResult so nothing escapes an operation
boundary.
"""

import functools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from config import DEFAULT_ERROR_MESSAGE
from models.embedding_provider import InvalidImageError, ProviderError

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    """Error kinds with their HTTP status equivalents"""
    INVALID_ARGUMENT = ("invalid_argument", 400)
    UNAUTHORIZED = ("unauthorized", 401)
    NOT_FOUND = ("not_found", 404)
    CONFLICT = ("conflict", 409)
    INTERNAL = ("internal", 500)

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def status_code(self) -> int:
        return self.value[1]


class ServiceError(Exception):
    """Typed failure raised inside a service operation"""

    def __init__(self, kind: ErrorKind, message: str = None):
        self.kind = kind
        self.message = message or DEFAULT_ERROR_MESSAGE
        super().__init__(self.message)


@dataclass
class OperationResult:
    """Outcome of a service operation: acknowledgment + payload, or a typed error"""
    success: bool
    message: str
    data: Any = None
    error: Optional[ErrorKind] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, message: str = "Success", data: Any = None, warnings: List[str] = None) -> "OperationResult":
        return cls(success=True, message=message, data=data, warnings=list(warnings or []))

    @classmethod
    def fail(cls, kind: ErrorKind, message: str = None) -> "OperationResult":
        return cls(success=False, message=message or DEFAULT_ERROR_MESSAGE, error=kind)

    @property
    def status_code(self) -> int:
        return self.error.status_code if self.error else 200


def returns_result(operation: str):
    """
    Decorate an async service method so that it always returns an
    OperationResult.

    ServiceError maps to its own kind, an undecodable image to
    INVALID_ARGUMENT, provider and unexpected failures to INTERNAL.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> OperationResult:
            try:
                return await func(*args, **kwargs)
            except ServiceError as e:
                logger.info(f"{operation} rejected ({e.kind.code}): {e.message}")
                return OperationResult.fail(e.kind, e.message)
            except InvalidImageError as e:
                logger.info(f"{operation} rejected: {e}")
                return OperationResult.fail(ErrorKind.INVALID_ARGUMENT, f"Invalid image: {e}")
            except ProviderError as e:
                logger.error(f"{operation} failed in embedding provider: {e}")
                return OperationResult.fail(ErrorKind.INTERNAL, f"Embedding extraction failed: {e}")
            except Exception as e:
                logger.exception(f"{operation} failed")
                return OperationResult.fail(ErrorKind.INTERNAL, f"{operation} failed: {e}")
        return wrapper
    return decorator
