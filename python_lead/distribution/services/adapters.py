"""
Delivery adapters for advertiser APIs.

Each adapter turns a Lead into one advertiser's wire format, sends exactly one
HTTP request and reports whether the advertiser accepted it. Adapters are
registered by advertiser_type. HTTP error responses come back as
success=False; transport errors (timeouts, connection errors) propagate as
httpx.HTTPError and are handled by the orchestrator. Adapters never retry.
"""
import json
import logging
import secrets
import string
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Optional
from urllib.parse import quote

import httpx
from django.conf import settings

from distribution.models import Advertiser, Lead
from distribution.services.responses import get_value_by_path

logger = logging.getLogger(__name__)


@dataclass
class DeliveryResult:
    """Outcome of a single delivery attempt."""
    success: bool
    response: str
    status_code: Optional[int] = None


Adapter = Callable[[Lead, Advertiser], DeliveryResult]

ADAPTERS: Dict[str, Adapter] = {}

COUNTRY_PHONE_PREFIXES = {
    'GT': '502', 'US': '1', 'CA': '1', 'MX': '52', 'BR': '55', 'AR': '54', 'CL': '56',
    'CO': '57', 'PE': '51', 'VE': '58', 'EC': '593', 'UY': '598', 'PY': '595', 'BO': '591',
    'CR': '506', 'PA': '507', 'SV': '503', 'HN': '504', 'NI': '505', 'DO': '1809',
    'GB': '44', 'DE': '49', 'FR': '33', 'ES': '34', 'IT': '39', 'NL': '31', 'BE': '32',
    'AT': '43', 'CH': '41', 'PT': '351', 'PL': '48', 'SE': '46', 'NO': '47', 'DK': '45',
    'FI': '358', 'IE': '353', 'CZ': '420', 'GR': '30', 'HU': '36', 'RO': '40', 'UA': '380',
    'AU': '61', 'NZ': '64', 'JP': '81', 'KR': '82', 'CN': '86', 'IN': '91', 'PH': '63',
    'TH': '66', 'VN': '84', 'ID': '62', 'MY': '60', 'SG': '65', 'HK': '852', 'TW': '886',
    'AE': '971', 'SA': '966', 'IL': '972', 'TR': '90', 'EG': '20', 'ZA': '27', 'NG': '234',
    'KE': '254', 'GH': '233', 'MA': '212', 'TN': '216', 'DZ': '213',
}


def register_adapter(*advertiser_types: str):
    """Register the decorated function as the adapter for the given types."""
    def decorator(func: Adapter) -> Adapter:
        for advertiser_type in advertiser_types:
            ADAPTERS[advertiser_type] = func
        return func
    return decorator


def get_adapter(advertiser_type: str, registry: Optional[Dict[str, Adapter]] = None) -> Optional[Adapter]:
    """Look up an adapter, returning None for unregistered types."""
    return (ADAPTERS if registry is None else registry).get(advertiser_type)


def _timeout() -> float:
    return float(getattr(settings, 'ADVERTISER_REQUEST_TIMEOUT', 30.0))


def _post(advertiser: Advertiser, url: str, **kwargs) -> httpx.Response:
    """Send one POST to an advertiser, logging the exchange."""
    logger.info(f"Sending lead to {advertiser.name}: {url}")
    try:
        response = httpx.post(url, timeout=_timeout(), **kwargs)
    except httpx.TimeoutException as e:
        logger.error(f"Timeout sending to {advertiser.name}: {e}")
        raise
    except httpx.ConnectError as e:
        logger.error(f"Connection error sending to {advertiser.name}: {e}")
        raise
    except httpx.HTTPError as e:
        logger.error(f"HTTP error sending to {advertiser.name}: {e}")
        raise

    logger.info(f"{advertiser.name} response: {response.status_code}")
    logger.debug(f"{advertiser.name} response body: {response.text}")
    return response


def _is_ok(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


def _json_or_none(text: str):
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def generate_password(length: int = 10, special: str = '') -> str:
    """Random account password with at least one upper, lower and digit."""
    alphabet = string.ascii_letters + string.digits
    chars = [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
    ]
    chars += [secrets.choice(alphabet) for _ in range(max(length - 3, 0))]
    return ''.join(chars) + special


def format_phone(mobile: str, country_code: str, with_plus: bool = True) -> str:
    """Digits-only phone with the country dialing prefix, E.164 style."""
    digits = ''.join(ch for ch in (mobile or '') if ch.isdigit())
    prefix = COUNTRY_PHONE_PREFIXES.get((country_code or '').upper(), '')
    if prefix and not digits.startswith(prefix):
        digits = prefix + digits
    return f"+{digits}" if with_plus else digits


def _offer_website(lead: Lead, config: dict) -> str:
    offer = lead.offer_name or ''
    if offer:
        if offer.startswith('www') and '.' in offer:
            return f"https://{offer}"
        return offer
    website = str(config.get('offer_website') or '')
    if website and not website.startswith('http') and '.' in website:
        website = f"https://{website}"
    return website


@register_adapter('trackbox')
def trackbox_adapter(lead: Lead, advertiser: Advertiser) -> DeliveryResult:
    """TrackBox: JSON body, credentials in custom headers, {"status": false} on rejection."""
    config = advertiser.config or {}

    payload = {
        'ai': str(config.get('ai', '')),
        'ci': str(config.get('ci', '')),
        'gi': str(config.get('gi', '')),
        'userip': lead.ip_address or '0.0.0.0',
        'firstname': lead.firstname,
        'lastname': lead.lastname,
        'email': lead.email,
        'password': generate_password(length=8, special='Aa1!'),
        'phone': lead.mobile,
        'so': lead.offer_name or '',
        'sub': lead.custom1 or '',
        'lg': lead.country_code or 'EN',
    }
    if lead.custom2:
        payload['MPC_1'] = lead.custom2
    if lead.custom3:
        payload['MPC_2'] = lead.custom3

    headers = {
        'Content-Type': 'application/json',
        'x-trackbox-username': str(config.get('username', '')),
        'x-trackbox-password': str(config.get('password', '')),
        'x-api-key': str(config.get('api_key_post') or advertiser.api_key or ''),
    }

    response = _post(advertiser, advertiser.url, json=payload, headers=headers)
    success = _is_ok(response)
    data = _json_or_none(response.text)
    if isinstance(data, dict) and data.get('status') is False:
        success = False
    return DeliveryResult(success=success, response=response.text, status_code=response.status_code)


@register_adapter('drmailer')
def drmailer_adapter(lead: Lead, advertiser: Advertiser) -> DeliveryResult:
    """Dr Tracker: form-encoded registration."""
    config = advertiser.config or {}

    data = {
        'apikey': advertiser.api_key or str(config.get('apikey', '')),
        'pass': str(config.get('pass', '')),
        'campaign_id': str(config.get('campaign_id', '')),
        'fname': lead.firstname,
        'lname': lead.lastname,
        'email': lead.email,
        'phone': lead.mobile,
        'ip': lead.ip_address or '0.0.0.0',
    }
    if lead.custom1:
        data['suid'] = lead.custom1
    if lead.custom2:
        data['clickid'] = lead.custom2
    if lead.offer_name:
        data['desc'] = lead.offer_name

    url = advertiser.url or 'https://tracker.doctor-mailer.com/repost.php?act=register'
    response = _post(advertiser, url, data=data)

    success = _is_ok(response)
    body = _json_or_none(response.text)
    if isinstance(body, dict):
        if body.get('status') == 'error' or body.get('error'):
            success = False
    elif 'error' in response.text.lower():
        success = False
    return DeliveryResult(success=success, response=response.text, status_code=response.status_code)


@register_adapter('enigma', 'getlinked')
def enigma_adapter(lead: Lead, advertiser: Advertiser) -> DeliveryResult:
    """
    Enigma / GetLinked: form-encoded, API key header, E.164 phone.
    A JSON "code" other than 0 means the lead was refused.
    """
    config = advertiser.config or {}

    data = {
        'email': lead.email,
        'firstName': lead.firstname,
        'lastName': lead.lastname,
        'password': generate_password(),
        'ip': lead.ip_address or '1.1.1.1',
        'phone': format_phone(lead.mobile, lead.country_code, with_plus=not config.get('skip_phone_plus')),
    }
    for name in ('custom1', 'custom2', 'custom3', 'comment'):
        value = getattr(lead, name)
        if value:
            data[name] = value

    offer_website = _offer_website(lead, config)
    if config.get('send_offer_fields', True):
        if lead.offer_name:
            data['offerName'] = lead.offer_name
        if offer_website:
            data['offerWebsite'] = offer_website

    headers = {config.get('auth_header_name') or 'Api-Key': advertiser.api_key}
    if offer_website and offer_website.startswith('http') and not config.get('skip_referer_header'):
        headers['Referer'] = offer_website

    response = _post(advertiser, advertiser.url, data=data, headers=headers)

    success = _is_ok(response)
    body = _json_or_none(response.text)
    if isinstance(body, dict):
        if body.get('code') is not None and body.get('code') != 0:
            success = False
        if body.get('success') is False or body.get('error'):
            success = False
    elif any(word in response.text.lower() for word in ('error', 'invalid')):
        success = False

    text = response.text
    if not text.strip():
        # Keep something auditable when the CRM answers with an empty body
        text = json.dumps({
            'message': 'Empty response body from CRM',
            'status': response.status_code,
        })
    return DeliveryResult(success=success, response=text, status_code=response.status_code)


def _matches_indicator(data, indicator: dict) -> bool:
    return get_value_by_path(data, indicator.get('path', '')) == indicator.get('value')


@register_adapter('custom')
def custom_adapter(lead: Lead, advertiser: Advertiser) -> DeliveryResult:
    """
    Configuration-driven adapter.

    advertiser.config['integration_config'] holds endpoint_url, content_type,
    auth_type (none/bearer/basic/api_key), auth_header_name, field_mappings
    (our field -> their field) and success/error indicators
    ([{"path": "a.b", "value": ...}]).
    """
    config = advertiser.config or {}
    integration = config.get('integration_config')
    if not integration:
        logger.error(f"No integration config for custom advertiser {advertiser.name}")
        return DeliveryResult(
            success=False,
            response=json.dumps({'error': 'No integration configuration found for this advertiser'}),
        )

    lead_data = {
        'firstname': lead.firstname,
        'lastname': lead.lastname,
        'email': lead.email,
        'mobile': lead.mobile,
        'country_code': lead.country_code,
        'ip_address': lead.ip_address or '',
        'offer_name': lead.offer_name or '',
        'custom1': lead.custom1 or '',
        'custom2': lead.custom2 or '',
        'custom3': lead.custom3 or '',
    }
    payload = {
        their_field: lead_data[our_field]
        for our_field, their_field in (integration.get('field_mappings') or {}).items()
        if our_field in lead_data and their_field
    }

    headers = {}
    auth = None
    auth_type = integration.get('auth_type', 'none')
    if auth_type == 'bearer' and advertiser.api_key:
        headers['Authorization'] = f"Bearer {advertiser.api_key}"
    elif auth_type == 'basic':
        username = str(config.get('username', ''))
        password = str(config.get('password', ''))
        if username and password:
            auth = (username, password)
    elif auth_type != 'none' and advertiser.api_key:
        headers[integration.get('auth_header_name') or 'Api-Key'] = advertiser.api_key

    url = integration.get('endpoint_url') or advertiser.url
    if integration.get('content_type') == 'application/x-www-form-urlencoded':
        response = _post(advertiser, url, data=payload, headers=headers, auth=auth)
    else:
        response = _post(advertiser, url, json=payload, headers=headers, auth=auth)

    success = _is_ok(response)
    body = _json_or_none(response.text)
    if body is not None:
        if any(_matches_indicator(body, i) for i in integration.get('error_indicators') or []):
            success = False
        success_indicators = integration.get('success_indicators') or []
        if success and success_indicators:
            success = any(_matches_indicator(body, i) for i in success_indicators)
    elif any(word in response.text.lower() for word in ('error', 'failed')):
        success = False

    return DeliveryResult(success=success, response=response.text, status_code=response.status_code)


@register_adapter('mock')
def mock_adapter(lead: Lead, advertiser: Advertiser) -> DeliveryResult:
    """Always accepts, no network. Used to test affiliate integrations."""
    mock_lead_id = f"MOCK-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
    body = {
        'success': True,
        'message': 'Test lead accepted by Mock Advertiser',
        'lead_id': mock_lead_id,
        'autologin_url': (
            f"https://mock-crm.example.com/autologin?lead_id={mock_lead_id}"
            f"&email={quote(lead.email)}"
        ),
        'data': {
            'id': mock_lead_id,
            'email': lead.email,
            'country_code': lead.country_code,
        },
    }
    logger.info(f"Mock adapter accepted lead {lead.id}")
    return DeliveryResult(success=True, response=json.dumps(body), status_code=200)
