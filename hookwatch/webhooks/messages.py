"""Human-readable notification text from event-watcher payloads.

Event data arrives as programmatic SBOR values: dicts carrying ``kind``,
``type_name``, ``field_name`` and ``value``, nested through ``fields``,
``elements`` and map ``entries``. Shapes vary between event types, so
everything here is best-effort lookup by key name and never raises on
unexpected input.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterator

from hookwatch.gateway.client import ResourceMetadata
from hookwatch.webhooks.models import NotificationMessage, WebhookEvent

DEFAULT_TITLE = "Webhook Event"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SCALARS = (str, int, float)


def iter_fields(node: Any) -> Iterator[dict[str, Any]]:
    """Depth-first walk over every dict in an SBOR value tree."""
    if not isinstance(node, dict):
        return
    yield node
    for key in ("fields", "elements"):
        children = node.get(key)
        if isinstance(children, list):
            for child in children:
                yield from iter_fields(child)
    entries = node.get("entries")
    if isinstance(entries, list):
        for entry in entries:
            if isinstance(entry, dict):
                yield from iter_fields(entry.get("key"))
                yield from iter_fields(entry.get("value"))


def _is_resource_reference(field: dict[str, Any]) -> bool:
    value = field.get("value")
    return (
        field.get("type_name") == "ResourceAddress"
        and field.get("kind") == "Reference"
        and isinstance(value, str)
        and value.startswith("resource_")
    )


def find_resource_address(event_data: dict[str, Any]) -> str | None:
    for field in iter_fields(event_data.get("data")):
        if _is_resource_reference(field):
            return field["value"]
    return None


def select_event_data(body: Any) -> dict[str, Any] | None:
    """Pick the sub-event to notify about.

    The first sub-event, unless a later one references a resource address,
    in which case that one wins. The payload's root ``message`` is attached
    as ``rootMessageObject``.
    """
    if not isinstance(body, dict):
        return None
    events = body.get("events")
    if not isinstance(events, list) or not events:
        return None

    chosen = next(
        (e for e in events if isinstance(e, dict) and find_resource_address(e)),
        events[0],
    )
    if not isinstance(chosen, dict):
        return None
    return {**chosen, "rootMessageObject": body.get("message")}


def truncate_address(address: str, head: int = 12, tail: int = 6) -> str:
    if len(address) <= head + tail + 6:
        return address
    return f"{address[:head]}...{address[-tail:]}"


def humanize_event_name(name: Any) -> str:
    if not isinstance(name, str) or not name:
        return DEFAULT_TITLE
    return _CAMEL_BOUNDARY.sub(" ", name)


def _scalar_text(value: Any) -> str | None:
    if isinstance(value, bool) or not isinstance(value, _SCALARS):
        return None
    text = str(value)
    return text or None


def _find_named(event_data: dict[str, Any], names: tuple[str, ...]) -> str | None:
    for field in iter_fields(event_data.get("data")):
        if field.get("field_name") in names:
            text = _scalar_text(field.get("value"))
            if text:
                return text
    return None


def _find_account(event_data: dict[str, Any]) -> str | None:
    for field in iter_fields(event_data.get("data")):
        value = field.get("value")
        if isinstance(value, str) and value.startswith("account_"):
            return value
    emitter = event_data.get("emitter")
    if isinstance(emitter, dict):
        global_emitter = emitter.get("globalEmitter")
        if isinstance(global_emitter, str) and global_emitter.startswith("account_"):
            return global_emitter
    return None


def _find_amount(event_data: dict[str, Any]) -> str | None:
    amount = _find_named(event_data, ("amount",))
    if amount:
        return amount
    for field in iter_fields(event_data.get("data")):
        if field.get("kind") == "Decimal":
            text = _scalar_text(field.get("value"))
            if text:
                return text
    return None


def _root_message_value(root: Any) -> str | None:
    if isinstance(root, str):
        return root or None
    if not isinstance(root, dict):
        return None
    content = root.get("content")
    if isinstance(content, dict):
        text = _scalar_text(content.get("value"))
        if text:
            return text
    return _scalar_text(root.get("value"))


def _find_memo(event_data: dict[str, Any]) -> str | None:
    memo = _find_named(event_data, ("memo", "message"))
    if memo:
        return memo
    return _root_message_value(event_data.get("rootMessageObject"))


def _find_type(event_data: dict[str, Any]) -> str | None:
    data = event_data.get("data")
    if isinstance(data, dict):
        type_name = _scalar_text(data.get("type_name"))
        if type_name:
            return type_name
    root = event_data.get("rootMessageObject")
    if isinstance(root, dict):
        return _scalar_text(root.get("type"))
    return None


def build_notification(
    event_data: dict[str, Any], metadata: ResourceMetadata | None = None
) -> NotificationMessage:
    """Map one sub-event (as returned by select_event_data) to a title and message."""
    event_name = event_data.get("eventName")
    title = humanize_event_name(event_name)
    resource_address = find_resource_address(event_data)

    lines: list[str] = []
    if type_name := _find_type(event_data):
        lines.append(f"Type: {type_name}")
    if account := _find_account(event_data):
        lines.append(f"Account: {truncate_address(account)}")
    if memo := _find_memo(event_data):
        lines.append(f"Memo: {memo}")
    if amount := _find_amount(event_data):
        lines.append(f"Amount: {amount}")
    if resource_address:
        short = truncate_address(resource_address)
        if metadata is not None and metadata.known:
            lines.append(f"Resource: {metadata.name} ({short})")
        else:
            lines.append(f"Resource: {short}")

    if not lines:
        lines.append(f"New {event_name or 'webhook'} event received")

    return NotificationMessage(
        title=title,
        message="\n".join(lines),
        resource_address=resource_address,
    )


def build_event_notification(
    event: WebhookEvent, metadata: ResourceMetadata | None = None
) -> NotificationMessage | None:
    event_data = select_event_data(event.body)
    if event_data is None:
        return None
    return build_notification(event_data, metadata)


# ---------------------------------------------------------------------------
# Message structure analysis (diagnostics for POST /api/webhook/test)
# ---------------------------------------------------------------------------

def _type_text(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def analyze_message_structure(payload: Any) -> dict[str, Any]:
    """Report how the root ``message`` of a payload would be read."""
    result: dict[str, Any] = {
        "hasMessage": False,
        "messageType": None,
        "hasContent": False,
        "contentType": None,
        "hasValue": False,
        "value": None,
        "extractionPath": None,
        "messageObject": None,
    }
    if not isinstance(payload, dict) or "message" not in payload:
        return result

    result["hasMessage"] = True
    message = payload["message"]

    if isinstance(message, dict):
        result["messageObject"] = message
        result["messageType"] = _type_text(message["type"]) if "type" in message else "object"

        if "content" in message:
            result["hasContent"] = True
            content = message["content"]
            if isinstance(content, dict):
                if "type" in content:
                    result["contentType"] = _type_text(content["type"])
                if "value" in content:
                    result["hasValue"] = True
                    result["value"] = content["value"]
                    result["extractionPath"] = "message.content.value"

        if not result["hasValue"] and "value" in message:
            result["hasValue"] = True
            result["value"] = message["value"]
            result["extractionPath"] = "message.value"

    elif isinstance(message, str):
        result["messageType"] = "string"
        result["hasValue"] = True
        result["value"] = message
        result["extractionPath"] = "message (direct string)"

    return result
