from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

from multidict import CIMultiDict, CIMultiDictProxy

from .errors import InvalidArgumentError


def _sanitize_header(name: str, value: str) -> tuple[str, str]:
    """
    Sanitize header name and value to prevent HTTP header injection (CRLF injection).
    Strips CR, LF, and null bytes from both name and value.
    """
    clean_name = name.replace("\r", "").replace("\n", "").replace("\x00", "")
    clean_value = value.replace("\r", "").replace("\n", "").replace("\x00", "")
    return clean_name, clean_value


def expand_header_value(value: object) -> list[str]:
    """Normalize a header value given as a str or a list of str to a list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
        return list(value)
    raise InvalidArgumentError(f"Expected str or list[str] header value, got: {value!r}")


def join_header_values(values: Iterable[str] | None) -> str | None:
    """Collapse multiple header values into one, joined with commas."""
    if values is None:
        return None
    return ",".join(values)


def find_header(headers: Mapping[str, Iterable[str]] | None, name: str) -> str | None:
    """Return the single value of header `name`, matched case-insensitively."""
    if not headers:
        return None
    if isinstance(headers, Headers):
        return headers.single_values.get(name)
    key = name.lower()
    for header, values in headers.items():
        if header.lower() == key:
            return join_header_values(values)
    return None


def update_headers(
    initial: Mapping[str, Iterable[str]],
    changes: Mapping[str, object] | None,
) -> Mapping[str, list[str]]:
    """
    Apply header changes to a copy of `initial`.

    Names are matched case-insensitively. A None value removes the header,
    a str or list[str] replaces all of its values.
    """
    if not changes:
        return initial
    merged: CIMultiDict[list[str]] = CIMultiDict()
    for name, values in initial.items():
        merged[name] = list(values)
    for name, value in changes.items():
        if value is None:
            merged.popall(name, None)
        else:
            merged.popall(name, None)
            merged[name] = expand_header_value(value)
    return {str(name): values for name, values in merged.items()}


class Headers(Mapping[str, list[str]]):
    """
    Immutable, case-insensitive, multi-valued header map.

    Names keep the case they were stored with; lookups ignore it. Entries
    without values are dropped. `single_values` is the same map with the
    values of each header joined by commas.
    """

    __slots__ = ("_values", "_names", "_single_values")

    def __init__(self, values: Mapping[str, object] | None = None) -> None:
        store: CIMultiDict[str] = CIMultiDict()
        for raw_name, raw_value in (values or {}).items():
            items = expand_header_value(raw_value)
            if not items:
                continue
            name, _ = _sanitize_header(raw_name, "")
            # Last write wins for names differing only in case.
            store.popall(name, None)
            for item in items:
                store.add(name, _sanitize_header(name, item)[1])

        names: dict[str, str] = {}
        for name in store.keys():
            names.setdefault(name.lower(), str(name))

        self._values = CIMultiDictProxy(store)
        self._names: tuple[str, ...] = tuple(names.values())
        self._single_values: CIMultiDictProxy[str] | None = None

    @classmethod
    def from_map(cls, values: Mapping[str, object] | None) -> Headers:
        if not values:
            return _EMPTY_HEADERS
        if isinstance(values, Headers):
            return values
        return cls(values)

    @classmethod
    def empty(cls) -> Headers:
        return _EMPTY_HEADERS

    @property
    def single_values(self) -> CIMultiDictProxy[str]:
        if self._single_values is None:
            self._single_values = CIMultiDictProxy(
                CIMultiDict((name, ",".join(self._values.getall(name))) for name in self._names)
            )
        return self._single_values

    def __getitem__(self, name: str) -> list[str]:
        return self._values.getall(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"<Headers {dict(self.items())!r}>"


_EMPTY_HEADERS = Headers()
