from typing import Literal, Optional

from pydantic import BaseModel, Field

Method = Literal["email", "sms"]
Purpose = Literal["login", "signup", "phone_verification"]


class SendCodeRequest(BaseModel):
    identifier: str = ""
    method: Method = "email"
    purpose: Purpose = "login"


class SendCodeResponse(BaseModel):
    success: bool = True
    message: str


class VerifyCodeRequest(BaseModel):
    identifier: str = ""
    code: str = Field(default="", max_length=32)
    method: Method = "email"
    purpose: Purpose = "login"


class VerifyCodeResponse(BaseModel):
    success: bool
    needsSignup: Optional[bool] = None
    error: Optional[str] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
