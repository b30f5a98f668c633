from fastapi import APIRouter, Depends, Header

from hub_auth.dependencies import get_code_dispatcher, get_verification_redeemer
from hub_auth.errors import InvalidCodeError
from hub_auth.schemas.otp import (
    ErrorResponse,
    SendCodeRequest,
    SendCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from hub_auth.services.dispatch import CodeDispatcher
from hub_auth.services.redeem import VerificationOutcome, VerificationRedeemer
from hub_auth.services.tokens import bearer_token

router = APIRouter(tags=["auth"])

ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in (400, 401, 409, 429, 500)
}
NEEDS_SIGNUP_MESSAGE = "No account found. Please sign up to continue."


@router.post("/send-otp", response_model=SendCodeResponse, responses=ERROR_RESPONSES)
def send_otp(
    payload: SendCodeRequest,
    authorization: str | None = Header(default=None),
    dispatcher: CodeDispatcher = Depends(get_code_dispatcher),
) -> SendCodeResponse:
    result = dispatcher.send_code(
        payload.identifier,
        method=payload.method,
        purpose=payload.purpose,
        caller_token=bearer_token(authorization),
    )
    return SendCodeResponse(success=True, message=result.message)


@router.post(
    "/verify-otp",
    response_model=VerifyCodeResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
def verify_otp(
    payload: VerifyCodeRequest,
    authorization: str | None = Header(default=None),
    redeemer: VerificationRedeemer = Depends(get_verification_redeemer),
) -> VerifyCodeResponse:
    outcome = redeemer.verify(
        payload.identifier,
        payload.code,
        method=payload.method,
        purpose=payload.purpose,
        caller_token=bearer_token(authorization),
    )
    if outcome is VerificationOutcome.INVALID_CODE:
        raise InvalidCodeError("Code rejected")
    if outcome is VerificationOutcome.NEEDS_SIGNUP:
        return VerifyCodeResponse(
            success=False, needsSignup=True, error=NEEDS_SIGNUP_MESSAGE
        )
    return VerifyCodeResponse(success=True)
