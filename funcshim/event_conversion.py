"""Conversion of legacy background events into CloudEvents."""

from __future__ import annotations

import copy
import re
from typing import Any

import structlog

from funcshim.cloudevents import SPEC_VERSION, CloudEvent
from funcshim.exceptions import EventConversionError

LOGGER = structlog.get_logger(__name__)

_BACKGROUND_TO_CE_TYPE = {
    "google.pubsub.topic.publish": "google.cloud.pubsub.topic.v1.messagePublished",
    "providers/cloud.pubsub/eventTypes/topic.publish": "google.cloud.pubsub.topic.v1.messagePublished",
    "google.storage.object.finalize": "google.cloud.storage.object.v1.finalized",
    "google.storage.object.delete": "google.cloud.storage.object.v1.deleted",
    "google.storage.object.archive": "google.cloud.storage.object.v1.archived",
    "google.storage.object.metadataUpdate": "google.cloud.storage.object.v1.metadataUpdated",
    "providers/cloud.storage/eventTypes/object.change": "google.cloud.storage.object.v1.finalized",
    "providers/cloud.firestore/eventTypes/document.write": "google.cloud.firestore.document.v1.written",
    "providers/cloud.firestore/eventTypes/document.create": "google.cloud.firestore.document.v1.created",
    "providers/cloud.firestore/eventTypes/document.update": "google.cloud.firestore.document.v1.updated",
    "providers/cloud.firestore/eventTypes/document.delete": "google.cloud.firestore.document.v1.deleted",
    "providers/firebase.auth/eventTypes/user.create": "google.firebase.auth.user.v1.created",
    "providers/firebase.auth/eventTypes/user.delete": "google.firebase.auth.user.v1.deleted",
    "providers/google.firebase.analytics/eventTypes/event.log": "google.firebase.analytics.log.v1.written",
    "providers/google.firebase.database/eventTypes/ref.create": "google.firebase.database.ref.v1.created",
    "providers/google.firebase.database/eventTypes/ref.write": "google.firebase.database.ref.v1.written",
    "providers/google.firebase.database/eventTypes/ref.update": "google.firebase.database.ref.v1.updated",
    "providers/google.firebase.database/eventTypes/ref.delete": "google.firebase.database.ref.v1.deleted",
}

FIREBASE_SERVICE = "firebase.googleapis.com"
FIREBASE_AUTH_SERVICE = "firebaseauth.googleapis.com"
FIREBASE_DB_SERVICE = "firebasedatabase.googleapis.com"
FIRESTORE_SERVICE = "firestore.googleapis.com"
PUBSUB_SERVICE = "pubsub.googleapis.com"
STORAGE_SERVICE = "storage.googleapis.com"

# Ordered: the first matching event type prefix wins.
_EVENT_TYPE_PREFIX_TO_SERVICE = (
    ("providers/cloud.firestore/", FIRESTORE_SERVICE),
    ("providers/google.firebase.analytics/", FIREBASE_SERVICE),
    ("providers/firebase.auth/", FIREBASE_AUTH_SERVICE),
    ("providers/google.firebase.database/", FIREBASE_DB_SERVICE),
    ("providers/cloud.pubsub/", PUBSUB_SERVICE),
    ("providers/cloud.storage/", STORAGE_SERVICE),
    ("google.pubsub", PUBSUB_SERVICE),
    ("google.storage", STORAGE_SERVICE),
)

# Services whose resource name is split into a CloudEvent source and subject.
_RESOURCE_PATTERNS = {
    FIREBASE_SERVICE: re.compile(r"^(projects/[^/]+)/(events/[^/]+)$"),
    FIREBASE_DB_SERVICE: re.compile(r"^projects/_/(instances/[^/]+)/(refs/.+)$"),
    FIRESTORE_SERVICE: re.compile(r"^(projects/[^/]+/databases/\(default\))/(documents/.+)$"),
    STORAGE_SERVICE: re.compile(r"^(projects/[^/]+/buckets/[^/]+)/(objects/.+)$"),
}

_FIREBASE_AUTH_METADATA_FIELDS = {
    "createdAt": "createTime",
    "lastSignedInAt": "lastSignInTime",
}

_DEFAULT_FIREBASE_DB_LOCATION = "us-central1"


def is_legacy_event(payload: Any) -> bool:
    return isinstance(payload, dict) and (
        isinstance(payload.get("context"), dict) or "eventType" in payload
    )


def _string_field(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value:
        raise EventConversionError(f"legacy event field '{field}' must be a non-empty string")
    return value


def _split_legacy_payload(payload: dict[str, Any]) -> tuple[dict[str, Any], Any]:
    if isinstance(payload.get("context"), dict):
        return payload["context"], payload.get("data")
    context = {
        "eventId": payload.get("eventId"),
        "timestamp": payload.get("timestamp"),
        "eventType": payload.get("eventType"),
        "resource": payload.get("resource"),
    }
    return context, payload.get("data")


def _split_resource(event_type: str, resource: Any) -> tuple[str, str, str | None]:
    """Return ``(service, resource, subject)`` for a legacy resource value."""
    service = ""
    if isinstance(resource, dict):
        service = resource.get("service") or ""
        if service:
            service = _string_field(service, "resource.service")
        name = _string_field(resource.get("name"), "resource.name")
    else:
        name = _string_field(resource, "resource")

    if not service:
        for prefix, candidate in _EVENT_TYPE_PREFIX_TO_SERVICE:
            if event_type.startswith(prefix):
                service = candidate
                break
        else:
            raise EventConversionError(
                f'Unable to find CloudEvent equivalent service for "{event_type}"'
            )

    pattern = _RESOURCE_PATTERNS.get(service)
    if pattern is None:
        return service, name, None

    match = pattern.fullmatch(name)
    if not match:
        raise EventConversionError(f'Resource "{name}" does not match the {service} format')
    return service, match.group(1), match.group(2)


def background_event_to_cloud_event(payload: Any) -> CloudEvent:
    """Convert a legacy background event body into an equivalent CloudEvent."""
    if not is_legacy_event(payload):
        raise EventConversionError("request body is not a CloudEvent or a legacy event")

    context, data = _split_legacy_payload(payload)
    data = copy.deepcopy(data)
    event_type = _string_field(context.get("eventType"), "eventType")
    event_id = _string_field(context.get("eventId"), "eventId")
    timestamp = context.get("timestamp")
    if timestamp is not None:
        timestamp = _string_field(timestamp, "timestamp")

    ce_type = _BACKGROUND_TO_CE_TYPE.get(event_type)
    if ce_type is None:
        raise EventConversionError(
            f'Unable to find CloudEvent equivalent type for "{event_type}"'
        )

    service, resource, subject = _split_resource(event_type, context.get("resource"))
    source = f"//{service}/{resource}"

    if service == PUBSUB_SERVICE:
        message = data if isinstance(data, dict) else {}
        message.setdefault("messageId", event_id)
        message.setdefault("publishTime", timestamp)
        data = {"message": message}

    if service == FIREBASE_AUTH_SERVICE and isinstance(data, dict):
        metadata = data.get("metadata")
        if isinstance(metadata, dict):
            for old, new in _FIREBASE_AUTH_METADATA_FIELDS.items():
                if old in metadata:
                    metadata[new] = metadata.pop(old)
        if "uid" in data:
            subject = f"users/{data['uid']}"

    if service == FIREBASE_DB_SERVICE:
        domain = payload.get("domain")
        if not domain:
            raise EventConversionError("Invalid FirebaseDB event payload: missing 'domain'")
        domain = _string_field(domain, "domain")
        location = _DEFAULT_FIREBASE_DB_LOCATION
        if domain != "firebaseio.com":
            location = domain.split(".")[0]
        source = f"//{service}/projects/_/locations/{location}/{resource}"

    LOGGER.debug("event_conversion.converted", legacy_type=event_type, type=ce_type)

    return CloudEvent(
        id=event_id,
        source=source,
        specversion=SPEC_VERSION,
        type=ce_type,
        datacontenttype="application/json",
        subject=subject,
        time=timestamp,
        data=data,
    )
