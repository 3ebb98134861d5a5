"""
Fail-soft results for the service boundary.

Every public operation returns an ActionResult instead of raising: engine
errors become failures carrying their code, unexpected exceptions are
logged and wrapped as InternalError.
"""

import functools
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, ParamSpec, TypeVar

import structlog
from pydantic import BaseModel

from .errors import HandoverEngineError, InternalError

logger = structlog.get_logger(__name__)

T = TypeVar('T')
P = ParamSpec('P')


@dataclass
class ActionResult(Generic[T]):
    """Discriminated success/failure returned by every service operation."""

    success: bool
    data: T | None = None
    error: HandoverEngineError | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> 'ActionResult[T]':
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: HandoverEngineError) -> 'ActionResult[T]':
        return cls(success=False, error=error)

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error else None

    def unwrap(self) -> T:
        """Return data, or raise the carried error."""
        if not self.success:
            raise self.error  # type: ignore[misc]
        return self.data  # type: ignore[return-value]

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging / API responses."""
        if not self.success:
            return {
                'success': False,
                'error': self.error.message if self.error else None,
                'error_code': self.error_code,
            }
        return {'success': True, 'data': _serialize(self.data)}


def _serialize(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode='json')
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


def fail_soft(
    operation: str,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[ActionResult[T]]]]:
    """
    Decorate an async operation so it always returns an ActionResult.

    Args:
        operation: Name used in log events (e.g. 'handover')
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[ActionResult[T]]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> ActionResult[T]:
            try:
                return ActionResult.ok(await func(*args, **kwargs))
            except HandoverEngineError as e:
                logger.warning(
                    f'{operation}.failed',
                    error=e.message,
                    error_code=e.code,
                    context=e.context,
                )
                return ActionResult.fail(e)
            except Exception as e:
                logger.exception(f'{operation}.unexpected_error', error_type=type(e).__name__)
                return ActionResult.fail(
                    InternalError(f'{operation} failed: {e}', context={'error_type': type(e).__name__})
                )

        return wrapper

    return decorator
