"""A fixed-capacity byte buffer with a movable read/write window."""

from .rw import read_bytes


class Buffer:
    """Byte storage of fixed capacity holding a window ``[start, end)``.

    Space before ``start`` can be claimed with :meth:`extend_header`, which
    lets length prefixes be written in front of an already built payload.
    """

    def __init__(self, size):
        self._data = bytearray(size)
        self._start = 0
        self._end = 0

    @classmethod
    def wrap(cls, data):
        """Create a buffer whose window holds a copy of ``data``."""
        buffer = cls(len(data))
        buffer._data[:] = data
        buffer._end = len(data)
        return buffer

    def __len__(self):
        return self._end - self._start

    def __repr__(self):
        return f"Buffer(start={self._start}, end={self._end}, capacity={len(self._data)})"

    @property
    def start(self):
        return self._start

    def capacity(self):
        return len(self._data)

    def free_len(self):
        return len(self._data) - self._end

    def is_empty(self):
        return self._end == self._start

    def is_full(self):
        return self._end == len(self._data)

    def getvalue(self):
        """Return the bytes inside the window."""
        return bytes(self._data[self._start:self._end])

    def extend(self, n):
        """Grow the window by ``n`` bytes at the end and return a writable view of them."""
        end = self._end + n
        if end > len(self._data):
            raise BufferError(
                f"buffer overflow: cap {len(self._data)}, end {self._end}, need {n}"
            )
        view = memoryview(self._data)[self._end:end]
        self._end = end
        return view

    def extend_header(self, n):
        """Grow the window by ``n`` bytes at the front and return a writable view of them."""
        if self._start < n:
            raise BufferError(
                f"buffer overflow: cap {len(self._data)}, start {self._start}, need {n}"
            )
        self._start -= n
        return memoryview(self._data)[self._start:self._start + n]

    def advance(self, n):
        self._start += n

    def truncate(self, to):
        self._end = self._start + to

    def reset(self, pos):
        self._start = pos
        self._end = pos

    def rewind(self, start):
        self._start = start

    def write(self, data):
        """Append as much of ``data`` as fits and return the number of bytes written."""
        if not data:
            return 0
        if self.is_full():
            raise BufferError("short buffer")
        n = min(len(data), self.free_len())
        self._data[self._end:self._end + n] = bytes(data[:n])
        self._end += n
        return n

    def write_byte(self, value):
        if self.is_full():
            raise BufferError("short buffer")
        self._data[self._end] = value & 0xFF
        self._end += 1

    def read_byte(self):
        if self.is_empty():
            raise EOFError("buffer is empty")
        value = self._data[self._start]
        self._start += 1
        return value

    def read(self, size=-1):
        """Consume and return up to ``size`` bytes (all when negative); b"" when empty."""
        available = len(self)
        if size < 0 or size > available:
            size = available
        data = bytes(self._data[self._start:self._start + size])
        self._start += size
        return data

    def peek(self, n):
        """Consume exactly ``n`` bytes and return them."""
        if self._start + n > self._end:
            raise BufferError("short buffer")
        data = bytes(self._data[self._start:self._start + n])
        self._start += n
        return data

    def read_full_from(self, reader, size):
        """Append exactly ``size`` bytes read from ``reader``."""
        if self._end + size > len(self._data):
            raise BufferError("short buffer")
        data = read_bytes(reader, size)
        self._data[self._end:self._end + size] = data
        self._end += size
        return size