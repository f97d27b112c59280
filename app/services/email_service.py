import logging
import threading

from flask import current_app, render_template

from app.utils.dates import utcnow
from app.utils.mailer import send_email

logger = logging.getLogger(__name__)


def _deliver(app, to, subject, html):
    with app.app_context():
        try:
            send_email(to=to, subject=subject, html=html)
        except Exception as e:
            logger.error("Failed to send '%s' email to %s: %s", subject, to, e)


def dispatch_email(to, subject, template, **context):
    """Render and send an email without letting failures reach the caller.

    With ``EMAIL_ASYNC`` the SMTP round trip happens on a background thread.
    """
    if not to:
        return
    app = current_app._get_current_object()
    try:
        html = render_template(
            f"emails/{template}.html",
            company_name=app.config["EMAIL_FROM_NAME"],
            frontend_url=app.config["FRONTEND_URL"],
            currency=app.config["CURRENCY"],
            year=utcnow().year,
            **context,
        )
    except Exception as e:
        logger.error("Failed to render email template %s: %s", template, e)
        return

    if app.config.get("EMAIL_ASYNC"):
        threading.Thread(target=_deliver, args=(app, to, subject, html), daemon=True).start()
    else:
        _deliver(app, to, subject, html)


def send_enrollment_approved_email(user, title, expires_at=None):
    dispatch_email(
        user.email,
        "Enrollment Approved!",
        "enrollment_approved",
        full_name=user.full_name or user.username,
        title=title,
        expires_at=expires_at,
    )


def send_enrollment_rejected_email(user, title, reason=None):
    dispatch_email(
        user.email,
        "Enrollment Request Update",
        "enrollment_rejected",
        full_name=user.full_name or user.username,
        title=title,
        reason=reason,
    )


def send_withdrawal_approved_email(user, amount):
    dispatch_email(
        user.email,
        "Withdrawal Processed Successfully",
        "withdrawal_approved",
        full_name=user.full_name or user.username,
        amount=amount,
    )


def send_withdrawal_rejected_email(user, amount, reason=None):
    dispatch_email(
        user.email,
        "Withdrawal Request Update",
        "withdrawal_rejected",
        full_name=user.full_name or user.username,
        amount=amount,
        reason=reason,
    )
