"""
Helpers for interpreting raw advertiser responses.

All extraction is best-effort: a response without a recognizable id, URL or
message is not an error.
"""
import json
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}', re.IGNORECASE)
NUMERIC_ID_PATTERN = re.compile(r'"(?:lead_?id|id)":\s*(\d+)', re.IGNORECASE)
ALPHANUMERIC_ID_PATTERN = re.compile(r'"ID":\s*"([a-zA-Z0-9]+)"')
URL_FIELD_PATTERN = re.compile(
    r'"(?:autologin_?url|redirect_?url|login_?url|loginURL|url)":\s*"(https?://[^"]+)"',
    re.IGNORECASE
)

LEAD_ID_FIELDS = ('lead_id', 'leadId', 'id', 'signupId', 'signupID')
AUTOLOGIN_FIELDS = (
    'autologin_url', 'autologinUrl', 'autoLoginUrl',
    'redirect_url', 'redirectUrl', 'login_url', 'loginUrl', 'loginURL', 'url',
)
MESSAGE_FIELDS = ('message', 'msg', 'description', 'reason')


def truncate(text: Optional[str], limit: int) -> str:
    """Return at most limit characters of text."""
    return (text or '')[:limit]


def get_value_by_path(data: Any, path: str) -> Any:
    """
    Get a value from nested dictionaries using dot notation.

    Returns None when any segment is missing.
    """
    value = data
    for key in path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return None
    return value


def _load_json(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def _first_field(data: dict, fields) -> Any:
    for name in fields:
        value = data.get(name)
        if value not in (None, ''):
            return value
    return None


def extract_external_lead_id(response_text: str) -> Optional[str]:
    """
    Extract the advertiser-side lead identifier from a response.

    Order: JSON fields at top level, then nested under 'data' (plus the
    details.leadRequest.ID shape); for any other body (plain text, broken JSON,
    JSON lists or scalars) a UUID-shaped substring, then an alphanumeric "ID"
    field, then a numeric id field.
    """
    data = _load_json(response_text)
    if isinstance(data, dict):
        nested_id = get_value_by_path(data, 'details.leadRequest.ID')
        if nested_id:
            return str(nested_id)

        value = _first_field(data, LEAD_ID_FIELDS)
        if value is None and isinstance(data.get('data'), dict):
            value = _first_field(data['data'], LEAD_ID_FIELDS)
        if value is None:
            value = data.get('leadRequestID')
        return str(value) if value not in (None, '') else None

    if not response_text:
        return None

    match = UUID_PATTERN.search(response_text)
    if match:
        return match.group(0)

    match = ALPHANUMERIC_ID_PATTERN.search(response_text)
    if match:
        return match.group(1)

    match = NUMERIC_ID_PATTERN.search(response_text)
    if match:
        return match.group(1)

    return None


def _as_url(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.startswith(('http://', 'https://')):
        return value
    return None


def extract_autologin_url(response_text: str) -> Optional[str]:
    """Extract an autologin/redirect URL for the lead, if the advertiser sent one."""
    data = _load_json(response_text)
    if isinstance(data, dict):
        for path in ('details.redirect.url', 'addonData.data.loginURL'):
            url = _as_url(get_value_by_path(data, path))
            if url:
                return url

        # Some CRMs put the URL directly in "data"
        url = _as_url(data.get('data'))
        if url:
            return url

        url = _as_url(_first_field(data, AUTOLOGIN_FIELDS))
        if url is None and isinstance(data.get('data'), dict):
            url = _as_url(_first_field(data['data'], AUTOLOGIN_FIELDS))
        return url

    if not response_text:
        return None

    match = URL_FIELD_PATTERN.search(response_text)
    return match.group(1) if match else None


def parse_rejection_reason(response_text: str, limit: int = 200) -> str:
    """
    Derive a human-readable rejection reason from an advertiser response.

    Recognizes {"errors": [{"message": ...}]}, {"error": "..."},
    {"error": {"message": ...}} and top-level message/msg/description/reason.
    Falls back to the first limit characters of the raw text.
    """
    data = _load_json(response_text)
    if not isinstance(data, dict):
        return truncate(response_text, limit)

    errors = data.get('errors')
    if isinstance(errors, list):
        messages = [e.get('message') for e in errors if isinstance(e, dict) and e.get('message')]
        if messages:
            return '; '.join(messages)

    error = data.get('error')
    if isinstance(error, str) and error:
        return error
    if isinstance(error, dict) and error.get('message'):
        return str(error['message'])

    for name in MESSAGE_FIELDS:
        value = data.get(name)
        if isinstance(value, str) and value:
            return value

    return truncate(response_text, limit)
