"""Turning handler return values into Responses.

Route and error handlers may return plain values instead of a
``Response``; ``negotiate`` picks the body and status by the value's type.
"""

from typing import Any

from perch.http.response import Payload, Response


def negotiate(value: Any, *, json_indent: int | None = None) -> Response:
    """Convert a handler's return value to a Response.

    Dispatch order:

    1. ``Response``           -> pass through
    2. ``Payload``            -> JSON body with the payload's status
    3. ``None``               -> 204, empty
    4. ``str``                -> 200, text/plain
    5. ``bytes``              -> 200, application/octet-stream
    6. ``dict`` / ``list``    -> 200, application/json
    7. ``(value, int)``       -> negotiate value, override status
    """
    match value:
        case Response():
            return value
        case Payload(data=data, status=status):
            return Response.from_json(data, status, indent=json_indent)
        case None:
            return Response(status=204)
        case str():
            return Response(body=value)
        case bytes():
            return Response(body=value, content_type="application/octet-stream")
        case dict() | list():
            return Response.from_json(value, indent=json_indent)
        case (inner, int() as status):
            return negotiate(inner, json_indent=json_indent).with_status(status)
        case _:
            msg = (
                f"Cannot convert {type(value).__name__} to a response. "
                "Return a Response, str, bytes, dict, list, or (value, status)."
            )
            raise TypeError(msg)
