"""
BulkSMS BD gateway client.
Used for the optional SMS copy of application status notifications.
"""

import json
import logging
import re
from typing import Optional, Tuple

import httpx

from smarttutors import config

logger = logging.getLogger(__name__)

SUCCESS_CODE = 202
MAX_SMS_LENGTH = 160

BD_MOBILE_RE = re.compile(r"^8801[3-9]\d{8}$")

GATEWAY_ERRORS = {
    1001: "Invalid Number",
    1002: "Sender ID not correct or disabled",
    1003: "Please provide all required fields or contact your system administrator",
    1005: "Internal Error",
    1006: "Balance validity not available",
    1007: "Insufficient balance",
    1011: "User ID not found",
    1012: "Masking SMS must be sent in Bengali",
    1013: "Sender ID has not found gateway by API key",
    1014: "Sender type name not found using this sender by API key",
    1015: "Sender ID has not found any valid gateway by API key",
    1016: "Sender type name active price info not found by this sender ID",
    1017: "Sender type name price info not found by this sender ID",
    1018: "The owner of this account is disabled",
    1019: "The sender type name price of this account is disabled",
    1020: "The parent of this account is not found",
}


def format_phone_number(number: str) -> str:
    """Normalise 01XXXXXXXXX style numbers to 8801XXXXXXXXX."""
    clean = re.sub(r"[\s\-()+]", "", number or "")
    if clean.startswith("01") and len(clean) == 11:
        clean = "880" + clean[1:]
    elif clean.startswith("1") and len(clean) == 10:
        clean = "880" + clean
    return clean


def is_valid_bangladesh_number(number: str) -> bool:
    return bool(BD_MOBILE_RE.match(number))


def parse_gateway_response(body: str) -> int:
    """The gateway answers with either a JSON object or a bare numeric code."""
    try:
        data = json.loads(body)
    except ValueError:
        data = None

    if isinstance(data, dict):
        return int(data.get("response_code") or data.get("code") or 0)
    if isinstance(data, int):
        return data
    try:
        return int(body.strip())
    except ValueError:
        return 0


async def send_sms(number: str, message: str) -> Tuple[bool, Optional[str]]:
    """
    Send a single SMS.

    Returns:
        Tuple of (success, error_message)
    """
    formatted = format_phone_number(number)
    if not is_valid_bangladesh_number(formatted):
        return False, f"Invalid phone number format: {number}"

    if not message or len(message) > MAX_SMS_LENGTH:
        return False, f"Message is required and must be {MAX_SMS_LENGTH} characters or less"

    if not config.BULKSMS_API_KEY:
        return False, "SMS gateway not configured"

    params = {
        "api_key": config.BULKSMS_API_KEY,
        "senderid": config.BULKSMS_SENDER_ID,
        "number": formatted,
        "message": message,
    }

    async with httpx.AsyncClient(timeout=15.0) as client:
        response = await client.post(f"{config.BULKSMS_BASE_URL}/smsapi", params=params)

    code = parse_gateway_response(response.text)
    if code == SUCCESS_CODE:
        logger.info("SMS sent to %s", formatted)
        return True, None

    error = GATEWAY_ERRORS.get(code) or f"SMS sending failed with code: {code}"
    logger.warning("SMS to %s rejected by gateway: %s", formatted, error)
    return False, error


def render_status_update_sms(payload: dict) -> str:
    code = (payload.get("tuition") or {}).get("code") or "your tuition"
    text = f"Smart Tutors: your application for {code} is now {payload['new_status']}."
    return text[:MAX_SMS_LENGTH]
