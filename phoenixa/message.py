from __future__ import annotations

import abc
import codecs
import logging
from collections.abc import AsyncIterator, Mapping
from functools import cached_property
from typing import Any

from multidict import CIMultiDict, CIMultiDictProxy

from .body import DEFAULT_ENCODING, Body
from .headers import Headers, expand_header_value, find_header, join_header_values
from .media_type import MediaType
from .utils import freeze_context

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Used for messages without a body and without headers.
_DEFAULT_HEADERS = Headers({"content-length": ["0"]})


def extract_body(message: Message) -> Body:
    """Return the Body of message without reading it."""
    return message._body


class Message(abc.ABC):
    """
    Shared logic of requests and responses.

    A message owns a single-use Body, immutable Headers and an immutable
    context. On construction the content-length and content-type headers
    are reconciled with what is known about the body.
    """

    def __init__(
        self,
        body: object = None,
        *,
        encoding: str | None = None,
        headers: Mapping[str, object] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        body = Body.of(body, encoding)
        self._body = body
        self._headers = Headers.from_map(_adjust_headers(_expand_headers(headers), body))
        self._context = freeze_context(context)

    @property
    def headers(self) -> CIMultiDictProxy[str]:
        """Headers with multiple values joined by commas."""
        return self._headers.single_values

    @property
    def headers_all(self) -> Headers:
        return self._headers

    @property
    def context(self) -> Mapping[str, Any]:
        """
        Data passed between middleware and handlers.

        For requests it flows to inner middleware and handlers, for
        responses to outer ones.
        """
        return self._context

    @property
    def is_empty(self) -> bool:
        """
        True if the body is known to be empty.

        May report False for a stream that turns out to be empty, never
        True for a non-empty one.
        """
        return self._body.content_length == 0

    @cached_property
    def content_length(self) -> int | None:
        value = self.headers.get("content-length")
        if value is None:
            return None
        return int(value)

    @cached_property
    def _content_type(self) -> MediaType | None:
        value = self.headers.get("content-type")
        if value is None:
            return None
        return MediaType.parse(value)

    @property
    def mime_type(self) -> str | None:
        content_type = self._content_type
        if content_type is None:
            return None
        return content_type.mime_type

    @property
    def encoding(self) -> str | None:
        """The codec named by the content-type charset, None if absent or unknown."""
        content_type = self._content_type
        if content_type is None:
            return None
        charset = content_type.parameters.get("charset")
        if charset is None or not _is_known_encoding(charset):
            return None
        return charset

    def read(self) -> AsyncIterator[bytes]:
        """Return the body stream. Can only be called once."""
        return self._body.read()

    async def read_as_string(self, encoding: str | None = None) -> str:
        """
        Read the whole body and decode it.

        Uses `encoding`, falling back to the message encoding, then UTF-8.
        Consumes the body like read().
        """
        decoder = codecs.getincrementaldecoder(encoding or self.encoding or DEFAULT_ENCODING)()
        stream = self.read()
        parts = []
        async for chunk in stream:
            parts.append(decoder.decode(chunk))
        parts.append(decoder.decode(b"", final=True))
        return "".join(parts)

    @abc.abstractmethod
    def change(
        self,
        *,
        headers: Mapping[str, object] | None = None,
        context: Mapping[str, Any] | None = None,
        body: object = None,
    ) -> Message:
        """Create a copy of this message with the given changes applied."""


def _expand_headers(headers: Mapping[str, object] | None) -> Mapping[str, list[str]] | None:
    if not headers:
        return None
    if isinstance(headers, Headers):
        return headers
    return {name: expand_header_value(value) for name, value in headers.items()}


def _adjust_headers(
    headers: Mapping[str, list[str]] | None,
    body: Body,
) -> Mapping[str, list[str]]:
    """Set content-type charset and content-length to match body."""
    same_encoding = _same_encoding(headers, body)
    if same_encoding:
        if body.content_length is None or find_header(headers, "content-length") == str(
            body.content_length
        ):
            return headers or Headers.empty()
        if body.content_length == 0 and not headers:
            return _DEFAULT_HEADERS

    new_headers: CIMultiDict[list[str]] = CIMultiDict()
    for name, values in (headers or {}).items():
        new_headers[name] = list(values)

    if not same_encoding:
        content_type = new_headers.get("content-type")
        if content_type is None:
            new_headers["content-type"] = [f"{DEFAULT_CONTENT_TYPE}; charset={body.encoding}"]
        else:
            media_type = MediaType.parse(join_header_values(content_type) or "").change(
                parameters={"charset": body.encoding}
            )
            new_headers["content-type"] = [str(media_type)]

    explicit_override_of_zero_length = (
        body.content_length == 0 and find_header(headers, "content-length") is not None
    )

    if body.content_length is not None and not explicit_override_of_zero_length:
        coding = join_header_values(new_headers.get("transfer-encoding"))
        if coding is None or coding.lower() == "identity":
            new_headers["content-length"] = [str(body.content_length)]

    logger.debug("Adjusted headers for body %r: %s", body, list(new_headers.keys()))
    return {str(name): values for name, values in new_headers.items()}


def _same_encoding(headers: Mapping[str, list[str]] | None, body: Body) -> bool:
    if body.encoding is None:
        return True

    content_type = find_header(headers, "content-type")
    if content_type is None:
        return False

    charset = MediaType.parse(content_type).parameters.get("charset")
    if charset is None or not _is_known_encoding(charset):
        return False
    return codecs.lookup(charset).name == codecs.lookup(body.encoding).name


def _is_known_encoding(name: str) -> bool:
    try:
        codecs.lookup(name)
    except LookupError:
        return False
    return True
