"""Initialize-once caching for host values that never change.

Boot time and page size are fixed for the lifetime of the host, so each is
computed at most once and then served from memory.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass
class OnceValue(Generic[T]):
    """A value computed on first use and read-only thereafter.

    Initialization is serialized with a lock so concurrent first lookups run
    the compute function exactly once. A compute function that raises leaves
    the value unset, and the next lookup tries again.

    Example:
        >>> page_size = OnceValue[int]()
        >>> page_size.get_or_compute(resource.getpagesize)
        4096
    """

    _value: T | None = field(default=None, repr=False)
    _set: bool = field(default=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def is_set(self) -> bool:
        """Whether the value has been computed."""
        return self._set

    def get_or_compute(self, compute_fn: Callable[[], T]) -> T:
        """Return the cached value, computing it on first call.

        Args:
            compute_fn: Function producing the value

        Returns:
            The cached value
        """
        if self._set:
            return self._value  # type: ignore[return-value]
        with self._lock:
            if not self._set:
                self._value = compute_fn()
                self._set = True
        return self._value  # type: ignore[return-value]
