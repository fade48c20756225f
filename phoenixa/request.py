from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from urllib.parse import unquote
from functools import cached_property
from typing import Any, NoReturn

from yarl import URL

from .errors import HijackError, InvalidArgumentError
from .headers import update_headers
from .hijack import HijackCallback, HijackException, HijackHandle, OnHijack
from .message import Message, extract_body
from .utils import parse_http_date, update_map

DEFAULT_PROTOCOL_VERSION = "1.1"


class Request(Message):
    """
    An HTTP request as seen by middleware and handlers.

    `handler_path` is the part of the requested path already consumed by
    routing, `url` the relative rest (plus the query). Together their
    path segments always make up the path of `requested_uri`. When only
    one of them is given the other is inferred; with neither, the
    handler path is "/".

    `on_hijack` is supplied by adapters that can give a handler the
    underlying connection. It is called at most once per request, even
    across copies made by change(), with a callback that must be passed a
    StreamChannel for the connection (possibly asynchronously). After
    hijack() the adapter receives a HijackException from the handler and
    must not send a response.
    """

    def __init__(
        self,
        method: str,
        requested_uri: str | URL,
        *,
        protocol_version: str | None = None,
        headers: Mapping[str, object] | None = None,
        handler_path: str | None = None,
        url: str | URL | None = None,
        body: object = None,
        encoding: str | None = None,
        context: Mapping[str, Any] | None = None,
        on_hijack: OnHijack | HijackHandle | None = None,
    ) -> None:
        if not method:
            raise InvalidArgumentError("Request method cannot be empty")

        requested_uri = _parse_requested_uri(requested_uri)
        if url is not None and not isinstance(url, URL):
            url = _to_url(url, "url")
        if handler_path is not None:
            handler_path = _normalize_handler_path(requested_uri.raw_path, handler_path)

        self.method = method
        self.requested_uri = requested_uri
        self.protocol_version = protocol_version or DEFAULT_PROTOCOL_VERSION
        self.handler_path = _compute_handler_path(requested_uri, handler_path, url)
        self.url = _compute_url(requested_uri, handler_path, url)
        _check_path_decomposition(requested_uri, self.handler_path, self.url)

        # Copies made by change() share the handle so hijack() stays single-use.
        if on_hijack is None or isinstance(on_hijack, HijackHandle):
            self._hijack_handle = on_hijack
        else:
            self._hijack_handle = HijackHandle(on_hijack)

        super().__init__(body, encoding=encoding, headers=headers, context=context)

    @property
    def can_hijack(self) -> bool:
        return self._hijack_handle is not None and not self._hijack_handle.called

    @property
    def is_hijacked(self) -> bool:
        return self._hijack_handle is not None and self._hijack_handle.called

    @cached_property
    def if_modified_since(self) -> datetime | None:
        """
        Parsed If-Modified-Since header, or None when it is absent.

        Raises ValueError if the header is not a valid HTTP date.
        """
        value = self.headers.get("if-modified-since")
        if value is None:
            return None
        return parse_http_date(value)

    def change(
        self,
        *,
        headers: Mapping[str, object] | None = None,
        context: Mapping[str, Any] | None = None,
        path: str | None = None,
        body: object = None,
    ) -> Request:
        """
        Create a copy of this request with the given changes applied.

        Keys in `headers` and `context` replace existing entries, None
        values remove them, everything else is copied unchanged. Without
        `body` the copy takes over this request's unread body.

        `path` moves the routing boundary forward: it must be a prefix of
        `url` and is appended to `handler_path`:

            >>> request.handler_path, str(request.url)
            ('/static/', 'dir/file.html')
            >>> request = request.change(path="dir")
            >>> request.handler_path, str(request.url)
            ('/static/dir/', 'file.html')
        """
        headers_all = update_headers(self.headers_all, headers)
        new_context = update_map(self.context, context)

        if body is None:
            body = extract_body(self)

        handler_path = self.handler_path
        if path is not None:
            handler_path += path

        return Request(
            self.method,
            self.requested_uri,
            protocol_version=self.protocol_version,
            headers=headers_all,
            handler_path=handler_path,
            body=body,
            context=new_context,
            on_hijack=self._hijack_handle,
        )

    def hijack(self, callback: HijackCallback) -> NoReturn:
        """
        Take control of the underlying connection.

        Schedules `callback` to be called with a StreamChannel for the
        connection and raises HijackException right away, telling the
        adapter not to send a response. Only possible with an adapter that
        supports hijacking, and only once per request.
        """
        if self._hijack_handle is None:
            raise HijackError("This request can't be hijacked")

        self._hijack_handle.run(callback)

        raise HijackException()

    def __repr__(self) -> str:
        return f"<Request [{self.method}] {self.requested_uri}>"


def _to_url(value: object, name: str) -> URL:
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{name} must be a str or yarl.URL, got {type(value).__name__}")
    try:
        return URL(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"{name} {value!r} could not be parsed: {exc}") from exc


def _parse_requested_uri(requested_uri: str | URL) -> URL:
    if not isinstance(requested_uri, URL):
        requested_uri = _to_url(requested_uri, "requested_uri")

    try:
        # Decoding may fail on malformed components; surface it here rather than in handlers.
        requested_uri.parts
        requested_uri.query
    except (UnicodeDecodeError, ValueError) as exc:
        raise InvalidArgumentError(
            f"requested_uri {str(requested_uri)!r}: URI parsing failed: {exc}"
        ) from exc

    if not requested_uri.scheme or not requested_uri.is_absolute():
        raise InvalidArgumentError(f"requested_uri {str(requested_uri)!r} must be an absolute URL")

    if requested_uri.raw_fragment:
        raise InvalidArgumentError(f"requested_uri {str(requested_uri)!r} may not have a fragment")

    return requested_uri


def _normalize_handler_path(requested_path: str, handler_path: str) -> str:
    if handler_path != requested_path and not handler_path.endswith("/"):
        handler_path += "/"
    return handler_path


def _compute_url(requested_uri: URL, handler_path: str | None, url: URL | None) -> URL:
    """
    Compute `url` from the Request arguments.

    A given url is validated and returned; otherwise it is what remains of
    the requested path after handler_path (or after the leading "/").
    """
    requested_path = requested_uri.raw_path
    query = requested_uri.raw_query_string

    if url is not None:
        if url.scheme or url.is_absolute() or url.raw_fragment:
            raise InvalidArgumentError(f'url "{url}" may contain only a path and query parameters')

        if not requested_path.endswith(url.raw_path):
            raise InvalidArgumentError(
                f'url "{url}" must be a suffix of requested_uri "{requested_uri}"'
            )

        if url.raw_query_string != query:
            raise InvalidArgumentError(
                f'url "{url}" must have the same query parameters as requested_uri "{requested_uri}"'
            )

        if url.raw_path.startswith("/"):
            raise InvalidArgumentError(f'url "{url}" must be relative')

        start = len(requested_path) - len(url.raw_path)
        if url.raw_path and requested_path[start - 1 : start] != "/":
            raise InvalidArgumentError(
                f'url "{url}" must be on a path boundary in requested_uri "{requested_uri}"'
            )

        return url

    if handler_path is not None:
        return _relative_url(requested_path[len(handler_path) :], query)

    return _relative_url(requested_path[1:], query)


def _compute_handler_path(requested_uri: URL, handler_path: str | None, url: URL | None) -> str:
    """
    Compute `handler_path` from the Request arguments.

    A given handler_path is validated and returned; otherwise it is the
    part of the requested path in front of url, or "/".
    """
    requested_path = requested_uri.raw_path

    if handler_path is not None:
        if not requested_path.startswith(handler_path):
            raise InvalidArgumentError(
                f'handler_path "{handler_path}" must be a prefix of requested_uri path "{requested_path}"'
            )
        if not handler_path.startswith("/"):
            raise InvalidArgumentError(f'handler_path "{handler_path}" must be root-relative')
        return handler_path

    if url is not None:
        if not url.raw_path:
            return requested_path
        if requested_path.endswith(url.raw_path):
            return requested_path[: len(requested_path) - len(url.raw_path)]
        # Not a suffix; _compute_url reports it.
        return "/"

    return "/"


def _relative_url(path: str, query: str) -> URL:
    return URL.build(path=path, query_string=query, encoded=True)


def _path_segments(path: str) -> list[str]:
    if path.startswith("/"):
        path = path[1:]
    if not path:
        return []
    return [unquote(segment) for segment in path.split("/")]


def _check_path_decomposition(requested_uri: URL, handler_path: str, url: URL) -> None:
    # Compare decoded segments: a relative url percent-encodes ":" in its
    # first segment, a root-relative path does not.
    handler = "/".join(_path_segments(handler_path))
    rest = "/".join(_path_segments(url.raw_path))
    join = "/" if url.raw_path.startswith("/") else ""
    if f"{handler}{join}{rest}" != "/".join(_path_segments(requested_uri.raw_path)):
        raise InvalidArgumentError(
            f'handler_path "{handler_path}" and url "{url}" must combine to equal '
            f'requested_uri path "{requested_uri.raw_path}"'
        )
