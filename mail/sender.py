"""
mail/sender.py -- Outbound email for verification codes.

EmailSender is the contract api/flows.py depends on. SMTPEmailSender is the
production implementation: one SMTP session per message, STARTTLS, login with
the configured sender credentials.

Delivery policy: no retry. Any SMTP or socket failure is raised as
DomainError(DELIVERY_ERROR) and the request that triggered the send fails.
The caller decides whether to re-issue a code.

Attachments are file paths. A file that cannot be read is logged and skipped;
the message is still sent.
"""

from __future__ import annotations

import logging
import mimetypes
import smtplib
from collections.abc import Sequence
from email.message import EmailMessage
from email.utils import formataddr
from pathlib import Path
from typing import Protocol

from core.errors import DomainError, ErrorKind

logger = logging.getLogger("sso.mail")


class EmailSender(Protocol):
    def send_email(
        self,
        subject: str,
        to: Sequence[str],
        html_body: str,
        cc: Sequence[str] = (),
        bcc: Sequence[str] = (),
        attachments: Sequence[str] = (),
    ) -> None: ...


class SMTPEmailSender:
    """Send HTML email through an SMTP relay that supports STARTTLS (e.g. Gmail on 587)."""

    def __init__(
        self,
        name: str,
        address: str,
        password: str,
        host: str = "smtp.gmail.com",
        port: int = 587,
        timeout: float = 10.0,
    ) -> None:
        self.name = name
        self.address = address
        self._password = password
        self.host = host
        self.port = port
        self.timeout = timeout

    def send_email(
        self,
        subject: str,
        to: Sequence[str],
        html_body: str,
        cc: Sequence[str] = (),
        bcc: Sequence[str] = (),
        attachments: Sequence[str] = (),
    ) -> None:
        op = "SMTPEmailSender.send_email"
        logger.info("op=%s attempting to send email to %d recipient(s)", op, len(to))

        message = self._build_message(subject, to, html_body, cc, attachments)
        # Bcc goes to the envelope only, never into the headers.
        recipients = [*to, *cc, *bcc]

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.starttls()
                smtp.login(self.address, self._password)
                smtp.send_message(message, from_addr=self.address, to_addrs=recipients)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("op=%s failed to send email: %s", op, exc)
            raise DomainError(ErrorKind.DELIVERY_ERROR, op, detail=type(exc).__name__) from exc

        logger.info("op=%s email sent", op)

    def _build_message(
        self,
        subject: str,
        to: Sequence[str],
        html_body: str,
        cc: Sequence[str],
        attachments: Sequence[str],
    ) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.name, self.address))
        message["To"] = ", ".join(to)
        if cc:
            message["Cc"] = ", ".join(cc)
        message.set_content(html_body, subtype="html")

        for path in attachments:
            try:
                data = Path(path).read_bytes()
            except OSError as exc:
                logger.error("failed to attach file %s to email: %s", path, exc)
                continue
            ctype, _encoding = mimetypes.guess_type(path)
            maintype, subtype = (ctype or "application/octet-stream").split("/", 1)
            message.add_attachment(data, maintype=maintype, subtype=subtype, filename=Path(path).name)

        return message
