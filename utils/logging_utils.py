import re
from typing import Dict, Iterable

PHONE = re.compile(r"^\+?[0-9]{9,15}$")


def mask_value(value: str) -> str:
    """Mask emails, phone numbers and gateway references before they reach the logs."""
    if not isinstance(value, str):
        return value
    if "@" in value:  # email
        name, _, domain = value.partition("@")
        return (name[:2] + "***@" + domain) if name else "***@" + domain
    if PHONE.match(value):
        return "*" * (len(value) - 3) + value[-3:]
    if len(value) > 12:
        return value[:4] + "..." + value[-4:]
    return "***"


def sanitize_payload(payload: Dict, allowed_keys: Iterable[str], masked_keys: Iterable[str] = ()) -> Dict:
    """Return a copy of payload with only allowed keys, masking the values of masked_keys."""
    masked_keys = set(masked_keys)
    result = {}
    for key in allowed_keys:
        if key in payload:
            result[key] = mask_value(payload[key]) if key in masked_keys else payload[key]
    return result
