"""
Mail transport for scheduler notifications.

SmtpMailTransport sends through smtplib. Message parts follow the
{"contentType", "type", "text"} shape used by the notification policy.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol, Sequence

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 10


class MailTransportError(Exception):
    """Raised when a message cannot be built or delivered."""
    pass


class MailTransport(Protocol):
    """Protocol for a mail transport."""

    def send(
        self,
        sender: str,
        to: Sequence[str],
        cc: Optional[Sequence[str]],
        bcc: Optional[Sequence[str]],
        subject: str,
        parts: list[dict],
    ) -> None:
        ...


def build_message(
    sender: str,
    to: Sequence[str],
    cc: Optional[Sequence[str]],
    subject: str,
    parts: list[dict],
) -> EmailMessage:
    """
    Build an EmailMessage from text parts.

    The first text part is the body; further text parts become alternatives
    (e.g. text/html).

    Raises:
        MailTransportError: If there is no text part or a part is malformed
    """
    texts = [part for part in parts if part.get("type", "text") == "text"]
    if not texts:
        raise MailTransportError("Message has no text part")

    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = ", ".join(to)
    if cc:
        msg["Cc"] = ", ".join(cc)
    msg["Subject"] = subject

    for index, part in enumerate(texts):
        content_type = part.get("contentType", "text/plain")
        maintype, _, subtype = content_type.partition("/")
        if maintype != "text" or not subtype:
            raise MailTransportError(f"Unsupported content type: {content_type}")
        text = part.get("text") or ""
        if index == 0:
            msg.set_content(text, subtype=subtype)
        else:
            msg.add_alternative(text, subtype=subtype)

    return msg


class SmtpMailTransport:
    """SMTP mail transport."""

    def __init__(
        self,
        host: str,
        port: int = 25,
        user: Optional[str] = None,
        password: Optional[str] = None,
        starttls: bool = False,
        timeout: float = SMTP_TIMEOUT_SECONDS,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    def send(
        self,
        sender: str,
        to: Sequence[str],
        cc: Optional[Sequence[str]],
        bcc: Optional[Sequence[str]],
        subject: str,
        parts: list[dict],
    ) -> None:
        """
        Send a message.

        Raises:
            MailTransportError: On formatting or delivery failure
        """
        try:
            msg = build_message(sender, to, cc, subject, parts)
        except (ValueError, TypeError) as e:
            raise MailTransportError(f"Cannot format message {subject!r}: {e}") from e
        recipients = list(to) + list(cc or []) + list(bcc or [])

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.ehlo()
                if self.starttls:
                    server.starttls()
                    server.ehlo()
                if self.user:
                    server.login(self.user, self.password or "")
                server.send_message(msg, from_addr=sender, to_addrs=recipients)
        except (smtplib.SMTPException, OSError) as e:
            raise MailTransportError(f"SMTP delivery via {self.host}:{self.port} failed: {e}") from e

        logger.info(f"Mail '{subject}' sent to {len(recipients)} recipient(s)")
