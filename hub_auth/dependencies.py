from hub_auth.services.channels import EmailChannel, SmsChannel
from hub_auth.services.directory import profile_directory
from hub_auth.services.dispatch import CodeDispatcher
from hub_auth.services.email import email_sender
from hub_auth.services.otp import email_code_store
from hub_auth.services.rate_limit import rate_limiter
from hub_auth.services.redeem import VerificationRedeemer
from hub_auth.services.sms import sms_client

email_channel = EmailChannel(email_code_store, email_sender)
sms_channel = SmsChannel(sms_client)

code_dispatcher = CodeDispatcher(
    rate_limiter, profile_directory, email_code_store, email_channel, sms_channel
)
verification_redeemer = VerificationRedeemer(
    rate_limiter, profile_directory, email_channel, sms_channel
)


def get_code_dispatcher() -> CodeDispatcher:
    return code_dispatcher


def get_verification_redeemer() -> VerificationRedeemer:
    return verification_redeemer
