"""CloudEvent model and request decoding (binary, structured and legacy modes)."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any

from starlette.datastructures import Headers
from starlette.requests import Request

from funcshim.exceptions import InvalidCloudEvent

SPEC_VERSION = "1.0"
STRUCTURED_CONTENT_TYPE = "application/cloudevents+json"
REQUIRED_ATTRIBUTES = ("id", "source", "specversion", "type")
OPTIONAL_ATTRIBUTES = ("datacontenttype", "dataschema", "subject", "time")


@dataclass(slots=True)
class CloudEvent:
    id: str
    source: str
    specversion: str
    type: str
    datacontenttype: str | None = None
    dataschema: str | None = None
    subject: str | None = None
    time: str | None = None
    data: Any = None
    extensions: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Any) -> CloudEvent:
        """Build an event from its JSON (structured mode) representation."""
        if not isinstance(payload, dict):
            raise InvalidCloudEvent("event must be a JSON object")

        missing = [name for name in REQUIRED_ATTRIBUTES if not payload.get(name)]
        if missing:
            raise InvalidCloudEvent(f"missing required attribute(s): {', '.join(missing)}")
        malformed = [name for name in REQUIRED_ATTRIBUTES if not isinstance(payload[name], str)]
        if malformed:
            raise InvalidCloudEvent(f"attribute(s) must be strings: {', '.join(malformed)}")

        attributes = dict(payload)
        data = attributes.pop("data", None)
        if "data_base64" in attributes:
            data = _decode_base64(attributes.pop("data_base64"))

        known = {
            name: attributes.pop(name)
            for name in REQUIRED_ATTRIBUTES + OPTIONAL_ATTRIBUTES
            if name in attributes
        }
        return cls(**known, data=data, extensions=attributes)

    def asdict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "specversion": self.specversion,
            "type": self.type,
        }
        for name in OPTIONAL_ATTRIBUTES:
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        result.update(self.extensions)
        if self.data is not None:
            result["data"] = self.data
        return result


def _decode_base64(value: Any) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, TypeError, ValueError) as exc:
        raise InvalidCloudEvent(f"invalid data_base64: {exc}") from exc


@dataclass(slots=True)
class Context:
    """Event metadata handed to functions using the ``(data, context)`` signature."""

    event_id: str
    timestamp: str | None
    event_type: str
    resource: str

    @classmethod
    def from_event(cls, event: CloudEvent) -> Context:
        return cls(
            event_id=event.id,
            timestamp=event.time,
            event_type=event.type,
            resource=event.source,
        )


def is_json_content_type(content_type: str | None) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type.endswith("/json") or media_type.endswith("+json")


def decode_json(body: bytes) -> Any:
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidCloudEvent(f"invalid JSON body: {exc}") from exc


def from_binary(headers: Headers, body: bytes) -> CloudEvent:
    """Decode a binary-mode event: attributes in ``ce-*`` headers, data in the body."""
    attributes: dict[str, Any] = {
        key[len("ce-"):]: value for key, value in headers.items() if key.startswith("ce-")
    }
    content_type = headers.get("content-type")
    if content_type:
        attributes["datacontenttype"] = content_type

    if not body:
        data = None
    elif is_json_content_type(content_type):
        data = decode_json(body)
    else:
        data = body
    attributes["data"] = data
    return CloudEvent.from_dict(attributes)


async def from_request(request: Request) -> CloudEvent:
    """Decode an inbound request into a CloudEvent.

    Binary mode is selected by a ``ce-specversion`` header, structured mode by
    the ``application/cloudevents+json`` content type. Anything else is treated
    as a legacy background event and converted.
    """
    # imported lazily to avoid circular imports
    from funcshim.event_conversion import background_event_to_cloud_event

    body = await request.body()
    if "ce-specversion" in request.headers:
        return from_binary(request.headers, body)

    content_type = request.headers.get("content-type", "")
    if content_type.split(";", 1)[0].strip().lower() == STRUCTURED_CONTENT_TYPE:
        return CloudEvent.from_dict(decode_json(body))

    return background_event_to_cloud_event(decode_json(body))
