"""
Booking field validation shared by the availability and booking engines.

Each tool declares which fields it requires; missing or malformed values
turn into a clarification prompt instead of an error.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

from storechat.utils import parse_date, parse_time

MIN_NAME_LENGTH = 2
MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _validate_name(value: str) -> bool:
    return len(value.strip()) >= MIN_NAME_LENGTH


def _validate_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value.strip()))


def _validate_phone(value: str) -> bool:
    digits = re.sub(r"[^\d]", "", value)
    return MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS


def _validate_date(value: str) -> bool:
    return parse_date(value) is not None


def _validate_time(value: str) -> bool:
    return parse_time(value) is not None


@dataclass(frozen=True)
class FieldDefinition:
    name: str
    display_name: str
    validator: Optional[Callable[[str], bool]] = None
    format_hint: str = ""


FIELDS: dict[str, FieldDefinition] = {
    f.name: f
    for f in [
        FieldDefinition("service_name", "service name"),
        FieldDefinition("date", "date", _validate_date, "YYYY-MM-DD"),
        FieldDefinition("time", "time", _validate_time, "HH:MM"),
        FieldDefinition("customer_name", "your name", _validate_name),
        FieldDefinition("customer_email", "email address", _validate_email),
        FieldDefinition("customer_phone", "phone number", _validate_phone),
        FieldDefinition("start_date", "start date", _validate_date, "YYYY-MM-DD"),
        FieldDefinition("end_date", "end date", _validate_date, "YYYY-MM-DD"),
        FieldDefinition("prefill_date", "date", _validate_date, "YYYY-MM-DD"),
        FieldDefinition("prefill_time", "time", _validate_time, "HH:MM"),
    ]
}


def _present(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def find_missing(params: dict[str, Any], required: list[str]) -> list[str]:
    """Names of required fields that are absent or blank, in declaration order."""
    return [name for name in required if not _present(params.get(name))]


def find_invalid(params: dict[str, Any]) -> list[str]:
    """Names of supplied fields whose value fails its validator."""
    invalid = []
    for name, value in params.items():
        definition = FIELDS.get(name)
        if definition is None or definition.validator is None or not _present(value):
            continue
        if not definition.validator(str(value)):
            invalid.append(name)
    return invalid


def describe_fields(names: list[str]) -> str:
    """Human list of field names: 'date, time and email address'."""
    labels = []
    for name in names:
        definition = FIELDS.get(name)
        if definition is None:
            labels.append(name.replace("_", " "))
        elif definition.format_hint:
            labels.append(f"{definition.display_name} ({definition.format_hint})")
        else:
            labels.append(definition.display_name)
    if len(labels) <= 1:
        return "".join(labels)
    return f"{', '.join(labels[:-1])} and {labels[-1]}"
