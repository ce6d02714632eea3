"""Document ID generation.

Format: "{system}-{type prefix}-{base36 millisecond tick}", e.g.
"CEPHO-ES-MGU1X2Y3". The tick is a monotonic logical clock: when the wall
clock has not moved past the last issued tick (same millisecond, or a clock
step backwards) the tick advances by one. IDs from one generator are
therefore distinct even under high call rates.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from cepho.models.documents import DocumentType

SYSTEM_ID_PREFIX = "CEPHO"

_BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def to_base36(value: int) -> str:
    """Encode a non-negative integer as uppercase base36."""
    if value < 0:
        raise ValueError(f"Cannot base36-encode negative value {value}")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class DocumentIdGenerator:
    """Thread-safe generator of unique, time-ordered document IDs."""

    def __init__(
        self,
        *,
        system: str = SYSTEM_ID_PREFIX,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        """Initialize the generator.

        Args:
            system: System prefix for every ID.
            clock_ms: Millisecond clock override (tests).
        """
        self._system = system
        self._clock_ms = clock_ms or _wall_clock_ms
        self._last_tick = -1
        self._lock = threading.Lock()

    def _next_tick(self) -> int:
        with self._lock:
            tick = max(self._clock_ms(), self._last_tick + 1)
            self._last_tick = tick
            return tick

    def generate(self, document_type: DocumentType) -> str:
        """Return a new document ID for the given type."""
        return f"{self._system}-{document_type.prefix}-{to_base36(self._next_tick())}"


_default_generator = DocumentIdGenerator()


def generate_document_id(document_type: DocumentType) -> str:
    """Return a new document ID from the process-wide generator."""
    return _default_generator.generate(document_type)
