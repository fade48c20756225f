from phoenixa.body import Body
from phoenixa.errors import (
    BodyConsumedError,
    HijackError,
    InvalidArgumentError,
    InvalidBodyError,
    PhoenixaError,
    StateError,
)
from phoenixa.headers import Headers
from phoenixa.hijack import HIJACKED, HijackException, StreamChannel, call_handler
from phoenixa.media_type import MediaType
from phoenixa.message import Message
from phoenixa.request import Request
from phoenixa.utils import parse_http_date

__all__ = [
    "Body",
    "Headers",
    "Message",
    "Request",
    "MediaType",
    "StreamChannel",
    "HijackException",
    "HIJACKED",
    "call_handler",
    "parse_http_date",
    "PhoenixaError",
    "InvalidArgumentError",
    "InvalidBodyError",
    "StateError",
    "BodyConsumedError",
    "HijackError",
]
