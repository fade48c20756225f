from __future__ import annotations

import codecs
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator

from .errors import BodyConsumedError, InvalidArgumentError, InvalidBodyError

DEFAULT_ENCODING = "utf-8"

_BYTES_TYPES = (bytes, bytearray, memoryview)


class Body:
    """
    The byte stream of a request or response.

    The stream can be handed out exactly once via read(). The content
    length is None when it can't be known up front (streamed input).

    Accepted inputs:
        None                          -> empty body, length 0
        str                           -> encoded with `encoding` or UTF-8
        bytes / bytearray / memoryview -> single chunk
        list or tuple of ints         -> single chunk
        list or tuple of byte chunks  -> one chunk per element
        async iterable of bytes       -> streamed, unknown length
        iterator/generator of bytes   -> streamed, unknown length
    """

    __slots__ = ("_stream", "_encoding", "_content_length")

    def __init__(self, body: object = None, encoding: str | None = None) -> None:
        content_length: int | None = None
        if encoding is not None:
            encoding = _check_encoding(encoding)

        if body is None:
            content_length = 0
            stream = _iter_chunks(())

        elif isinstance(body, str):
            if encoding is None:
                encoded = body.encode(DEFAULT_ENCODING)
                if not _is_plain_ascii(encoded, len(body)):
                    encoding = DEFAULT_ENCODING
            else:
                encoded = body.encode(encoding)
            content_length = len(encoded)
            stream = _iter_chunks((encoded,))

        elif isinstance(body, _BYTES_TYPES):
            data = bytes(body)
            content_length = len(data)
            stream = _iter_chunks((data,))

        elif isinstance(body, (list, tuple)):
            chunks = _sequence_chunks(body)
            content_length = sum(len(chunk) for chunk in chunks)
            stream = _iter_chunks(chunks)

        elif isinstance(body, AsyncIterable):
            stream = _iter_async(body)

        elif isinstance(body, Iterator):
            stream = _iter_sync(body)

        else:
            raise InvalidBodyError(
                f"Body {body!r} must be None, a str, bytes, a list or a stream"
            )

        self._stream: AsyncIterator[bytes] | None = stream
        self._encoding = encoding
        self._content_length = content_length

    @classmethod
    def of(cls, body: object = None, encoding: str | None = None) -> Body:
        """Return body unchanged if it already is a Body, otherwise wrap it."""
        if isinstance(body, Body):
            return body
        return cls(body, encoding)

    @property
    def encoding(self) -> str | None:
        return self._encoding

    @property
    def content_length(self) -> int | None:
        return self._content_length

    @property
    def is_consumed(self) -> bool:
        return self._stream is None

    def read(self) -> AsyncIterator[bytes]:
        """
        Hand out the underlying byte stream.

        May only be called once; later calls raise BodyConsumedError.
        """
        if self._stream is None:
            raise BodyConsumedError(
                'The "read" method can only be called once on a Request or Response object'
            )
        stream, self._stream = self._stream, None
        return stream

    def __repr__(self) -> str:
        state = "consumed" if self.is_consumed else "unread"
        return f"<Body {state} length={self._content_length} encoding={self._encoding}>"


def _is_plain_ascii(encoded: bytes, length: int) -> bool:
    # Non-ASCII characters encode to more than one byte.
    if len(encoded) != length:
        return False
    return all(byte & 0x80 == 0 for byte in encoded)


def _check_encoding(encoding: str) -> str:
    try:
        codecs.lookup(encoding)
    except LookupError as exc:
        raise InvalidArgumentError(f"Unknown encoding: {encoding!r}") from exc
    return encoding


def _sequence_chunks(body: list | tuple) -> tuple[bytes, ...]:
    if all(isinstance(item, int) for item in body):
        try:
            return (bytes(body),) if body else ()
        except ValueError as exc:
            raise InvalidBodyError(f"Body byte values must be in range(0, 256): {exc}") from exc
    chunks = []
    for item in body:
        if isinstance(item, (list, tuple)) and all(isinstance(value, int) for value in item):
            try:
                chunks.append(bytes(item))
            except ValueError as exc:
                raise InvalidBodyError(f"Body byte values must be in range(0, 256): {exc}") from exc
        elif isinstance(item, _BYTES_TYPES):
            chunks.append(bytes(item))
        else:
            raise InvalidBodyError(
                f"Body sequence items must be bytes-like, got {type(item).__name__}"
            )
    return tuple(chunks)


async def _iter_chunks(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


async def _iter_async(source: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    async for chunk in source:
        yield bytes(chunk)


async def _iter_sync(source: Iterator[bytes]) -> AsyncIterator[bytes]:
    for chunk in source:
        yield bytes(chunk)
