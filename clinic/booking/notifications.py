import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional, Protocol

from .config import MailConfig
from .email_templates import (
    admin_notice_html, admin_notice_text,
    patient_confirmation_html, patient_confirmation_text,
)
from .errors import MailDispatchFailure
from .models import Appointment

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to_email: str, subject: str, text_body: str, html_body: str) -> None:
        ...


class SmtpMailer:
    """Sends multipart plain + HTML messages over SMTP."""

    def __init__(self, config: MailConfig):
        self.config = config

    def send(self, to_email: str, subject: str, text_body: str, html_body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.config.sender
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        context = ssl.create_default_context()
        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port) as server:
            if self.config.smtp_port == 587:
                server.starttls(context=context)
            server.login(self.config.username, self.config.password)
            server.sendmail(self.config.username, [to_email], msg.as_string())


class NotificationDispatcher:
    """Best-effort booking emails: a confirmation to the patient and a notice to the admin.

    ``notify_booking`` never raises. A failed send is logged and not retried.
    """

    def __init__(self, config: MailConfig, mailer: Optional[Mailer] = None):
        self.config = config
        if mailer is None and config.enabled:
            mailer = SmtpMailer(config)
        self.mailer = mailer

    def _send(self, to_email: str, subject: str, text_body: str, html_body: str) -> bool:
        if self.mailer is None:
            logger.info("SMTP not configured. Email '%s' would be sent to %s", subject, to_email)
            return False
        try:
            self.mailer.send(to_email, subject, text_body, html_body)
        except Exception as e:
            raise MailDispatchFailure(f"Failed to send '{subject}' to {to_email}: {e}") from e
        return True

    def send_patient_confirmation(self, appointment: Appointment) -> bool:
        clinic = self.config.clinic
        return self._send(
            appointment.email,
            f"Appointment Confirmation - {clinic.name}",
            patient_confirmation_text(appointment, clinic),
            patient_confirmation_html(appointment, clinic),
        )

    def send_admin_notice(self, appointment: Appointment) -> bool:
        if not self.config.admin_email:
            logger.warning("ADMIN_EMAIL not configured; skipping admin notice for %s", appointment.id)
            return False
        return self._send(
            self.config.admin_email,
            "New Appointment Booking",
            admin_notice_text(appointment),
            admin_notice_html(appointment, self.config.clinic),
        )

    def notify_booking(self, appointment: Appointment) -> List[str]:
        """Send both booking emails; return the recipients that were actually sent."""
        sent = []
        for send, recipient in (
            (self.send_patient_confirmation, appointment.email),
            (self.send_admin_notice, self.config.admin_email),
        ):
            try:
                if send(appointment):
                    sent.append(recipient)
                    logger.info("Booking email sent to %s", recipient)
            except MailDispatchFailure as e:
                logger.error("Email sending error for appointment %s: %s", appointment.id, e)
            except Exception:
                logger.exception("Could not prepare email to %s for appointment %s",
                                  recipient, appointment.id)
        return sent
