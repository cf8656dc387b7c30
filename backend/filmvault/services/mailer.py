"""
Mailer
──────
Renders Jinja2 email templates and delivers them over SMTP.

Each template defines three blocks: ``subject``, ``plain_body`` and
``html_body``. Delivery is retried a few times before the last error is
raised to the caller; callers run this off the request path.
"""
import logging
import smtplib
import time
from email.message import EmailMessage
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

from filmvault.core.config import Settings

logger = logging.getLogger(__name__)

SEND_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 0.5

_env = Environment(
    loader=PackageLoader("filmvault", "templates"),
    autoescape=select_autoescape(enabled_extensions=("html", "j2")),
    undefined=StrictUndefined,
)


def _render_block(template_name: str, block: str, data: dict[str, Any]) -> str:
    template = _env.get_template(template_name)
    context = template.new_context(data)
    return "".join(template.blocks[block](context)).strip()


class Mailer:
    """SMTP notification sink: send(recipient, template_name, data)."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        sender: str,
        timeout: float = 5.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_settings(cls, config: Settings) -> "Mailer":
        return cls(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            username=config.SMTP_USERNAME,
            password=config.SMTP_PASSWORD,
            sender=config.SMTP_SENDER,
            timeout=config.SMTP_TIMEOUT_SECONDS,
        )

    def build_message(self, recipient: str, template_name: str, data: dict[str, Any]) -> EmailMessage:
        msg = EmailMessage()
        msg["To"] = recipient
        msg["From"] = self.sender
        msg["Subject"] = _render_block(template_name, "subject", data)
        msg.set_content(_render_block(template_name, "plain_body", data))
        msg.add_alternative(_render_block(template_name, "html_body", data), subtype="html")
        return msg

    def send(self, recipient: str, template_name: str, data: dict[str, Any]) -> None:
        """
        Render *template_name* with *data* and deliver it to *recipient*.

        Template errors raise immediately. SMTP failures are retried
        SEND_ATTEMPTS times, RETRY_DELAY_SECONDS apart; the last one is raised.
        """
        msg = self.build_message(recipient, template_name, data)

        last_exc: Exception | None = None
        for attempt in range(1, SEND_ATTEMPTS + 1):
            try:
                self._deliver(msg)
                return
            except (smtplib.SMTPException, OSError) as exc:
                last_exc = exc
                logger.warning(
                    "Email delivery to %s failed (attempt %d/%d): %s",
                    recipient, attempt, SEND_ATTEMPTS, exc,
                )
                if attempt < SEND_ATTEMPTS:
                    time.sleep(RETRY_DELAY_SECONDS)

        raise last_exc

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as conn:
            if self.username:
                conn.starttls()
                conn.login(self.username, self.password)
            conn.send_message(msg)
