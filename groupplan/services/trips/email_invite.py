import html
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import formataddr
from typing import Optional
from urllib.parse import urlencode
from fastapi.concurrency import run_in_threadpool
from groupplan.core.config import settings
from groupplan.core.logger import logger


@dataclass
class EmailResult:
    success: bool
    error: Optional[str] = None


def generate_signup_link(trip_id: int) -> str:
    """
    Returns the frontend signup URL that lands the new account on the trip
    """
    query = urlencode({"redirect": f"/trips/{trip_id}", "invitation": "true"})
    return f"{settings.FRONTEND_BASE_URL}/auth/signup?{query}"


def format_expiry(expires_at: Optional[datetime]) -> str:
    if expires_at is None:
        return ""
    return f"This invitation expires on {expires_at.strftime('%A, %B %d, %Y')}."


class SmtpEmailSender:
    def __init__(
        self,
        host: Optional[str] = settings.SMTP_HOST,
        port: int = settings.SMTP_PORT,
        user: Optional[str] = settings.SMTP_USER,
        password: Optional[str] = settings.SMTP_PASSWORD,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password

    def is_configured(self) -> bool:
        return bool(self.host and self.user)

    def build_invitation_message(
        self,
        to: str,
        trip_title: str,
        inviter_name: str,
        trip_id: int,
        expires_at: Optional[datetime] = None,
    ) -> MIMEMultipart:
        signup_link = generate_signup_link(trip_id)
        expiry_text = format_expiry(expires_at)
        safe_inviter = html.escape(inviter_name)
        safe_title = html.escape(trip_title)

        message = MIMEMultipart("alternative")
        message["From"] = formataddr((settings.APP_NAME, self.user or ""))
        message["To"] = to
        message["Subject"] = f'{inviter_name} invited you to join "{trip_title}" on {settings.APP_NAME}'

        text = (
            f"{inviter_name} invited you to plan \"{trip_title}\" together on {settings.APP_NAME}.\n\n"
            f"Create your account to join: {signup_link}\n\n"
            f"{expiry_text}"
        )
        body = f"""
        <html>
          <body>
            <p>Hey there,<br><br>
               <strong>{safe_inviter}</strong> invited you to plan <b>{safe_title}</b> together on
               <strong>{settings.APP_NAME}</strong>!<br><br>
               <a href="{signup_link}" style="padding: 10px 20px; background-color: #0984e3; color: white; text-decoration: none; border-radius: 5px;">Join the trip</a>
               <br><br>
               Or paste this link into your browser:<br>
               <code>{signup_link}</code>
               <br><br>
               {expiry_text}
            </p>
          </body>
        </html>
        """

        message.attach(MIMEText(text, "plain"))
        message.attach(MIMEText(body, "html"))
        return message

    def _deliver(self, to: str, message: MIMEMultipart) -> None:
        with smtplib.SMTP_SSL(self.host, self.port) as server:
            server.login(self.user, self.password or "")
            server.sendmail(self.user, [to], message.as_string())

    async def send_invitation_email(
        self,
        to: str,
        trip_title: str,
        inviter_name: str,
        trip_id: int,
        expires_at: Optional[datetime] = None,
    ) -> EmailResult:
        if not self.is_configured():
            return EmailResult(success=False, error="Email service not configured")

        try:
            message = self.build_invitation_message(to, trip_title, inviter_name, trip_id, expires_at)
            await run_in_threadpool(self._deliver, to, message)
        except Exception as e:
            logger.warning(f"[Email Invite] Failed to send to {to}: {e}")
            return EmailResult(success=False, error=str(e))

        logger.info(f"[Email Invite] Sent to {to} for trip {trip_id}")
        return EmailResult(success=True)
