"""
Random Sources

Injected byte sources for key block padding and PIN field fill. paysec never
generates entropy itself: callers decide where random bytes come from, which
keeps every codec deterministic for a given source output.
"""

from abc import ABC, abstractmethod
from typing import Callable, Union

from paysec.core.exceptions import RandomSourceError


class RandomSource(ABC):
    """Capability returning the next N bytes of a byte stream."""

    @abstractmethod
    def next_bytes(self, length: int) -> bytes:
        """
        Return the next bytes of the stream.

        Args:
            length: Number of bytes requested

        Returns:
            Up to ``length`` bytes. Consumers treat a short read as an error.
        """

    def take(self, length: int) -> bytes:
        """Return exactly ``length`` bytes or raise RandomSourceError."""
        if length == 0:
            return b""
        data = bytes(self.next_bytes(length))
        if len(data) < length:
            raise RandomSourceError(requested=length, received=len(data))
        return data[:length]


class FixedRandomSource(RandomSource):
    """Replays a fixed buffer; used for test vectors."""

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self._offset = 0

    def next_bytes(self, length: int) -> bytes:
        chunk = self._data[self._offset : self._offset + length]
        self._offset += len(chunk)
        return chunk

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset


class CounterRandomSource(RandomSource):
    """Deterministic byte stream start, start+1, ... modulo 256."""

    def __init__(self, start: int = 0):
        self._counter = start & 0xFF

    def next_bytes(self, length: int) -> bytes:
        out = bytearray()
        for _ in range(length):
            out.append(self._counter)
            self._counter = (self._counter + 1) & 0xFF
        return bytes(out)


class CallableRandomSource(RandomSource):
    """Adapts a ``func(n) -> bytes`` callable such as ``secrets.token_bytes``."""

    def __init__(self, func: Callable[[int], bytes]):
        self._func = func

    def next_bytes(self, length: int) -> bytes:
        return self._func(length)


RandomSourceLike = Union[RandomSource, bytes, bytearray, Callable[[int], bytes]]


def as_random_source(source: RandomSourceLike) -> RandomSource:
    """
    Coerce a caller-supplied source into a RandomSource.

    Raw bytes are replayed once; callables are invoked per request.
    """
    if isinstance(source, RandomSource):
        return source
    if isinstance(source, (bytes, bytearray)):
        return FixedRandomSource(bytes(source))
    if callable(source):
        return CallableRandomSource(source)
    raise TypeError(f"Unsupported random source: {type(source).__name__}")
