"""Bounded buffer for measurements issued before the collector is reachable.

Ring buffer that drops the oldest request on overflow, used by transports
with auto-queue enabled. Requests are replayed in FIFO order on connect.

Thread Safety:
    NOT thread-safe. The owning transport serializes access.
"""

from collections import deque

import structlog

from probe_listener.contracts.transport import MeasureRequest

logger = structlog.get_logger(__name__)


class RequestBuffer:
    """Ring buffer that drops the oldest request on overflow.

    Drops are logged every _LOG_INTERVAL, not per request.

    Example:
        buffer = RequestBuffer(max_size=1000)
        buffer.append(request)
        pending = buffer.drain()
    """

    _LOG_INTERVAL = 100

    def __init__(self, max_size: int = 1000) -> None:
        """Initialize the buffer.

        Args:
            max_size: Maximum number of requests to buffer.

        Raises:
            ValueError: If max_size < 1.
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self._buffer: deque[MeasureRequest] = deque(maxlen=max_size)
        self._dropped_count: int = 0
        self._last_logged_drop_count: int = 0

    def append(self, request: MeasureRequest) -> None:
        """Append a request, evicting the oldest if the buffer is full."""
        # Check before append: deque evicts silently
        was_full = len(self._buffer) == self._buffer.maxlen
        self._buffer.append(request)
        if was_full:
            self._dropped_count += 1
            if self._dropped_count - self._last_logged_drop_count >= self._LOG_INTERVAL:
                logger.warning(
                    "Measurement queue overflow - requests dropped",
                    dropped_since_last_log=self._dropped_count - self._last_logged_drop_count,
                    dropped_total=self._dropped_count,
                    buffer_size=self._buffer.maxlen,
                )
                self._last_logged_drop_count = self._dropped_count

    def drain(self) -> list[MeasureRequest]:
        """Remove and return all buffered requests, oldest first."""
        pending = list(self._buffer)
        self._buffer.clear()
        return pending

    @property
    def dropped_count(self) -> int:
        """Number of requests dropped due to overflow."""
        return self._dropped_count

    def __len__(self) -> int:
        return len(self._buffer)
