"""
Parsing and formatting of media types as carried by the Content-Type header.

Implements the RFC 9110 grammar:

    media-type = type "/" subtype *( OWS ";" OWS parameter )
    parameter  = token "=" ( token / quoted-string )
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from multidict import CIMultiDict, CIMultiDictProxy

_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_QUOTED_STRING = r'"(?:[^"\\]|\\.)*"'

_TYPE_RE = re.compile(rf"\s*({_TOKEN})/({_TOKEN})\s*")
_PARAMETER_RE = re.compile(rf";\s*({_TOKEN})=({_TOKEN}|{_QUOTED_STRING})\s*")
_TOKEN_RE = re.compile(_TOKEN)
_ESCAPE_RE = re.compile(r"\\(.)")


class MediaType:
    """
    A parsed media type such as ``text/html; charset=utf-8``.

    Type and subtype are lowercased, parameter names are case-insensitive.
    Instances are immutable; use change() to derive a modified copy.
    """

    __slots__ = ("type", "subtype", "parameters")

    def __init__(
        self,
        type: str,
        subtype: str,
        parameters: Mapping[str, str] | None = None,
    ) -> None:
        self.type = type.lower()
        self.subtype = subtype.lower()
        self.parameters: CIMultiDictProxy[str] = CIMultiDictProxy(
            CIMultiDict(parameters or {})
        )

    @classmethod
    def parse(cls, value: str) -> MediaType:
        """Parse a Content-Type header value. Raises ValueError if malformed."""
        match = _TYPE_RE.match(value)
        if match is None:
            raise ValueError(f"Invalid media type: {value!r}")
        type_, subtype = match.group(1), match.group(2)

        parameters: CIMultiDict[str] = CIMultiDict()
        pos = match.end()
        while pos < len(value):
            param = _PARAMETER_RE.match(value, pos)
            if param is None:
                raise ValueError(f"Invalid media type parameters: {value!r}")
            raw = param.group(2)
            if raw.startswith('"'):
                raw = _ESCAPE_RE.sub(r"\1", raw[1:-1])
            parameters[param.group(1)] = raw
            pos = param.end()

        return cls(type_, subtype, parameters)

    @property
    def mime_type(self) -> str:
        return f"{self.type}/{self.subtype}"

    def change(self, parameters: Mapping[str, str] | None = None) -> MediaType:
        """Return a copy whose parameters are merged with the given ones."""
        merged = CIMultiDict(self.parameters)
        if parameters:
            for name, value in parameters.items():
                merged[name] = value
        return MediaType(self.type, self.subtype, merged)

    def __str__(self) -> str:
        out = self.mime_type
        for name, value in self.parameters.items():
            out += f"; {name}={_quote(value)}"
        return out

    def __repr__(self) -> str:
        return f"<MediaType {self}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MediaType):
            return NotImplemented
        return (
            self.mime_type == other.mime_type
            and {k.lower(): v for k, v in self.parameters.items()}
            == {k.lower(): v for k, v in other.parameters.items()}
        )

    def __hash__(self) -> int:
        return hash(self.mime_type)


def _quote(value: str) -> str:
    if _TOKEN_RE.fullmatch(value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
