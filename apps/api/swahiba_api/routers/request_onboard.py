"""Guest onboarding: OTP, access code and support request creation.

Every action is a POST to one endpoint, selected by ``action``.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.config import settings
from swahiba_api.core.errors import ValidationFailed
from swahiba_api.core.security import is_valid_access_code
from swahiba_api.database import get_db
from swahiba_api.logging_config import get_logger
from swahiba_api.middleware.rate_limit import limiter
from swahiba_api.schemas.chat import RequestEnvelope, RequestOut
from swahiba_api.schemas.onboarding import (
    CreateRequestWithPinAction,
    CreateRequestWithSessionAction,
    OnboardAction,
    SetAccessCodeAction,
    StartOtpAction,
    VerifyOtpAction,
)
from swahiba_api.services import otp
from swahiba_api.services.access_code import set_access_code, verify_access_code
from swahiba_api.services.sessions import validate_session
from swahiba_api.services.support_requests import create_support_request

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["onboarding"])

ACCESS_CODE_FORMAT_ERROR = "Access code must be 4 letters/numbers"


@router.post("/request-onboard", response_model=None)
@limiter.limit("20/minute")
async def request_onboard(
    request: Request,
    body: OnboardAction,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Run one onboarding action.

    - ``start_otp``: issue a code (echoed as ``dev_code`` only with OTP_DEV_ECHO)
    - ``verify_otp``: prove the phone with the code
    - ``set_access_code`` / ``set_access_code_no_otp``: bind a 4-character code
    - ``create_request_with_pin`` / ``create_request_with_session``: open a request
    """
    if isinstance(body, StartOtpAction):
        code = await otp.start_otp(db, body.phone)
        result: dict = {"ok": True}
        if settings.otp_dev_echo:
            result["dev_code"] = code
        return result

    if isinstance(body, VerifyOtpAction):
        await otp.verify_otp(db, body.phone, body.otp)
        return {"ok": True}

    if isinstance(body, SetAccessCodeAction):
        await set_access_code(
            db, body.phone, body.access_code, require_recent_otp=body.requires_otp
        )
        return {"ok": True}

    if isinstance(body, CreateRequestWithPinAction):
        if not is_valid_access_code(body.access_code):
            raise ValidationFailed(ACCESS_CODE_FORMAT_ERROR)
        identity_id = await verify_access_code(db, body.phone, body.access_code)
        support_request = await create_support_request(
            db, identity_id, body.phone, body.model_dump()
        )
        return _request_envelope(support_request)

    if isinstance(body, CreateRequestWithSessionAction):
        principal = await validate_session(db, body.session_token)
        support_request = await create_support_request(
            db, principal.identity_id, principal.phone, body.model_dump()
        )
        return _request_envelope(support_request)

    raise ValidationFailed("Invalid action")


def _request_envelope(support_request) -> dict:
    return RequestEnvelope(request=RequestOut.model_validate(support_request)).model_dump(
        mode="json"
    )
