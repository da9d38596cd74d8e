"""
Outbound delivery of password reset codes.

Codes are emailed through AWS SES. The verification code manager only sees the
NotificationSender interface, so tests and other channels can plug in their own
sender.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional
import boto3
from botocore.exceptions import ClientError, BotoCoreError
from app.core.config import settings

logger = logging.getLogger(__name__)

RESET_CODE_SUBJECT = "Your Elite Glam password reset code"

# SES error codes worth a specific hint in the logs
SES_ERROR_HINTS = {
    'MessageRejected': "SES rejected the message content or recipient",
    'MailFromDomainNotVerified': "Sender domain is not verified in SES",
    'AccountSendingPausedException': "Sending is paused for this SES account",
    'Throttling': "SES sending rate exceeded",
}

_RESET_CODE_HTML = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{subject}</title>
</head>
<body style="margin: 0; padding: 32px 16px; background-color: #fbf7f9; font-family: Helvetica, Arial, sans-serif;">
    <div style="max-width: 480px; margin: 0 auto; background-color: #ffffff; border-radius: 12px; padding: 32px;">
        <h2 style="margin: 0 0 16px 0; color: #2d1b2e;">Password reset</h2>
        <p style="margin: 0 0 24px 0; color: #5f5461; font-size: 15px; line-height: 1.6;">
            Someone asked to reset the password for this Elite Glam account.
            Type the code below into the app to set a new one.
        </p>
        <p style="margin: 0 0 24px 0; text-align: center; font-size: 34px; font-weight: bold; letter-spacing: 10px; color: #b0417a; font-family: Menlo, monospace;">
            {code}
        </p>
        <p style="margin: 0 0 8px 0; color: #5f5461; font-size: 14px;">
            The code is valid for {ttl_minutes} minutes and works only once.
        </p>
        <p style="margin: 0; color: #9b8f9c; font-size: 13px;">
            Didn't ask for this? Ignore this email and your password stays the same.
        </p>
    </div>
</body>
</html>
"""

_RESET_CODE_TEXT = """Password reset

Someone asked to reset the password for this Elite Glam account.
Type this code into the app to set a new one:

    {code}

The code is valid for {ttl_minutes} minutes and works only once.

Didn't ask for this? Ignore this email and your password stays the same.

Elite Glam
"""


class NotificationSender(ABC):
    """Delivers a verification code to a recipient out-of-band"""

    @abstractmethod
    def deliver(self, recipient: str, code: str) -> bool:
        """Return True if the code was handed to the delivery channel"""


class EmailService(NotificationSender):
    """
    Sends reset code emails with AWS SES.

    Uses explicit AWS keys from settings when both are present, otherwise the
    default boto3 credential chain (IAM role, shared config).
    """

    def __init__(self, code_ttl_minutes: Optional[int] = None):
        client_kwargs = {'region_name': settings.AWS_REGION}
        if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
            client_kwargs['aws_access_key_id'] = settings.AWS_ACCESS_KEY_ID
            client_kwargs['aws_secret_access_key'] = settings.AWS_SECRET_ACCESS_KEY

        self.ses_client = boto3.client('ses', **client_kwargs)
        self.source = f"{settings.AWS_SES_FROM_NAME} <{settings.AWS_SES_FROM_EMAIL}>"
        self.code_ttl_minutes = code_ttl_minutes or settings.RESET_CODE_TTL_MINUTES

    def deliver(self, recipient: str, code: str) -> bool:
        return self.send_password_reset_code(to_email=recipient, reset_code=code)

    def send_password_reset_code(self, to_email: str, reset_code: str) -> bool:
        """
        Email a password reset code.

        Args:
            to_email: Recipient email address
            reset_code: 6-digit reset code

        Returns:
            bool: True if SES accepted the message, False otherwise
        """
        values = {
            'subject': RESET_CODE_SUBJECT,
            'code': reset_code,
            'ttl_minutes': self.code_ttl_minutes,
        }
        return self._send(
            to_email=to_email,
            subject=RESET_CODE_SUBJECT,
            html_body=_RESET_CODE_HTML.format(**values),
            text_body=_RESET_CODE_TEXT.format(**values)
        )

    def _send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        try:
            response = self.ses_client.send_email(
                Source=self.source,
                Destination={'ToAddresses': [to_email]},
                Message={
                    'Subject': {'Data': subject, 'Charset': 'UTF-8'},
                    'Body': {
                        'Html': {'Data': html_body, 'Charset': 'UTF-8'},
                        'Text': {'Data': text_body, 'Charset': 'UTF-8'}
                    }
                }
            )
        except ClientError as e:
            error = e.response.get('Error', {})
            code = error.get('Code', 'Unknown')
            hint = SES_ERROR_HINTS.get(code, error.get('Message', ''))
            logger.error(f"SES could not send '{subject}' to {to_email}: {code} - {hint}")
            return False
        except BotoCoreError as e:
            logger.error(f"SES request for {to_email} failed before reaching AWS: {e}")
            return False

        logger.info(f"Email '{subject}' sent to {to_email} (MessageId: {response.get('MessageId')})")
        return True


email_service = EmailService()
