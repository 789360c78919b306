"""Reusable byte buffers for rendering log lines."""

import queue


class BufferPool:
    """Thread-safe pool of ``bytearray`` scratch buffers."""

    def __init__(self, max_pooled: int = 64):
        self.max_pooled = max_pooled
        self._buffers: queue.SimpleQueue[bytearray] = queue.SimpleQueue()

    def get(self) -> bytearray:
        """Borrow an empty buffer."""
        try:
            buf = self._buffers.get_nowait()
        except queue.Empty:
            return bytearray()
        buf.clear()
        return buf

    def put(self, buf: bytearray) -> None:
        """Return a buffer; it is dropped when the pool is full."""
        if self._buffers.qsize() < self.max_pooled:
            self._buffers.put(buf)

    def __len__(self) -> int:
        return self._buffers.qsize()
