import logging
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from flask import current_app

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, html: str, text: str = None):
    cfg = current_app.config
    if not cfg.get("MAIL_ENABLED"):
        logger.info("Mail disabled, skipping '%s' to %s", subject, to)
        return False

    sender = cfg["EMAIL_FROM_ADDRESS"]
    msg = EmailMessage()
    msg["From"] = f"{cfg['EMAIL_FROM_NAME']} <{sender}>"
    msg["To"] = to
    msg["Subject"] = subject
    msg["Reply-To"] = sender
    msg["Message-ID"] = make_msgid(domain=sender.split("@")[-1])

    msg.set_content(text or "This is an automated message. Please view in HTML.")
    msg.add_alternative(html, subtype="html")

    with smtplib.SMTP_SSL(cfg["SMTP_HOST"], cfg["SMTP_PORT"]) as server:
        server.login(sender, cfg["SMTP_PASSWORD"])
        server.send_message(msg)
    logger.info("Email '%s' sent to %s", subject, to)
    return True
