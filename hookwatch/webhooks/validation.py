"""Structural validation of event-watcher webhook payloads."""

from __future__ import annotations

from typing import Any

from hookwatch.webhooks.models import ValidationResult

_EMITTER_FIELDS = ("globalEmitter", "methodEmitter", "outerEmitter")


def _is_nonempty_str(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def _is_object(value: Any) -> bool:
    # JSON arrays pass as objects, same as the event watcher's own schema check
    return isinstance(value, (dict, list))


def _get(value: Any, key: str) -> Any:
    return value.get(key) if isinstance(value, dict) else None


def validate_webhook_payload(payload: Any) -> ValidationResult:
    """Check a payload against the event-watcher schema.

    Never raises. The result is informational; callers store the payload
    regardless of the outcome.
    """
    if not _is_object(payload):
        return ValidationResult(valid=False, errors=["Payload must be an object"])

    errors: list[str] = []

    if not _is_nonempty_str(_get(payload, "eventWatcherId")):
        errors.append("eventWatcherId is required and must be a string")

    if not _is_nonempty_str(_get(payload, "transactionId")):
        errors.append("transactionId is required and must be a string")

    events = _get(payload, "events")
    if not isinstance(events, list):
        errors.append("events is required and must be an array")
    else:
        for index, event in enumerate(events):
            errors.extend(_validate_event(index, event))

    return ValidationResult(valid=not errors, errors=errors)


def _validate_event(index: int, event: Any) -> list[str]:
    prefix = f"events[{index}]"
    if not _is_object(event):
        return [f"{prefix} must be an object"]

    errors: list[str] = []

    if not _is_object(_get(event, "data")):
        errors.append(f"{prefix}.data is required and must be an object")

    emitter = _get(event, "emitter")
    if not _is_object(emitter):
        errors.append(f"{prefix}.emitter is required and must be an object")
    else:
        for name in _EMITTER_FIELDS:
            if not _is_nonempty_str(_get(emitter, name)):
                errors.append(f"{prefix}.emitter.{name} is required and must be a string")

    if not _is_nonempty_str(_get(event, "eventName")):
        errors.append(f"{prefix}.eventName is required and must be a string")

    return errors
