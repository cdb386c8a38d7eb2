"""SMS gateway client for out-of-band OTP delivery.

Posts to an HTTP SMS gateway configured by ``SMS_GATEWAY_URL``. Delivery
is disabled when no gateway is configured.
"""

import httpx

from swahiba_api.config import settings
from swahiba_api.logging_config import get_logger

logger = get_logger(__name__)

OTP_MESSAGE_TEMPLATE = "Your Swahiba verification code is {code}. It expires in {minutes} minutes."


class SmsGatewayError(Exception):
    """Error handing a message to the SMS gateway."""


def is_configured() -> bool:
    return bool(settings.sms_gateway_url)


async def send_sms(to_phone: str, text: str) -> None:
    """Send a text message through the gateway.

    Raises:
        SmsGatewayError: If the gateway is not configured or rejects the message.
    """
    if not settings.sms_gateway_url:
        raise SmsGatewayError("SMS gateway is not configured")

    headers = {}
    if settings.sms_gateway_token:
        headers["Authorization"] = f"Bearer {settings.sms_gateway_token}"

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                settings.sms_gateway_url,
                json={
                    "to": to_phone,
                    "from": settings.sms_sender_id,
                    "text": text,
                },
                headers=headers,
            )
    except httpx.HTTPError as exc:
        raise SmsGatewayError(f"SMS gateway unreachable: {exc}") from exc

    if response.status_code >= 300:
        raise SmsGatewayError(
            f"SMS gateway error: {response.status_code} {response.text}"
        )

    logger.info("SMS handed to gateway", to_phone=to_phone)


async def send_otp(to_phone: str, code: str) -> bool:
    """Deliver an OTP code. Best-effort: returns False instead of raising."""
    if not is_configured():
        logger.debug("SMS gateway not configured, OTP not delivered", phone=to_phone)
        return False
    text = OTP_MESSAGE_TEMPLATE.format(code=code, minutes=settings.otp_expiry_minutes)
    try:
        await send_sms(to_phone, text)
    except SmsGatewayError as exc:
        logger.error("OTP delivery failed", phone=to_phone, error=str(exc))
        return False
    return True
