"""
Return type for best-effort storage operations
"""
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar('T')


@dataclass
class StoreResult(Generic[T]):
    """
    Value produced by a storage-backed component.

    ``persisted`` is False when the value did not come from (or did not reach)
    the database: defaults synthesized for a missing row, a merged update that
    could not be written, or a log record built in memory. ``error`` holds the
    storage failure when there was one.
    """
    value: T
    persisted: bool = True
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> 'StoreResult[T]':
        return cls(value=value, persisted=True)

    @classmethod
    def fallback(cls, value: T, error: Optional[str] = None) -> 'StoreResult[T]':
        return cls(value=value, persisted=False, error=error)

    @property
    def degraded(self) -> bool:
        """True when storage failed, as opposed to simply having no row"""
        return self.error is not None
