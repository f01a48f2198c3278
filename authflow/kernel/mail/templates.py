"""
Bodies of the transactional emails.

Each builder returns a MailMessage with a plain-text part and an HTML part.
The plaintext token only ever appears inside the link.
"""

from html import escape

from authflow.kernel.mail.dispatcher import MailMessage

_BUTTON_STYLE = (
    "display: inline-block; color: #ffffff; background-color: #3498db; "
    "border: solid 1px #3498db; border-radius: 5px; text-decoration: none; "
    "font-size: 14px; font-weight: bold; margin: 15px 0px; padding: 5px 15px;"
)


def build_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/{token}"


def reset_password_email(to: str, name: str, link: str, expires_hours: int) -> MailMessage:
    body = (
        f"Hi {name},\n\n"
        "A request to reset your password has been made. If you did not make "
        "this request, ignore this email. Otherwise open the link below to "
        "choose a new password:\n\n"
        f"{link}\n\n"
        f"This link will expire in {expires_hours} hours.\n"
    )
    html = (
        f"<p>Hi {escape(name)},</p>"
        "<p>A request to reset your password has been made. If you did not make "
        "this request, ignore this email. If you did make the request, please "
        "click the button below to reset your password:</p>"
        f"<a href='{escape(link, quote=True)}' target='_blank' style='{_BUTTON_STYLE}'>Reset password</a>"
        f"<p><small>This link will expire in {expires_hours} hours</small></p>"
    )
    return MailMessage(to=to, subject="Reset your password", body=body, html=html)


def verify_email_email(to: str, name: str, link: str) -> MailMessage:
    body = (
        f"Hi {name},\n\n"
        "Please confirm this email address by opening the link below:\n\n"
        f"{link}\n\n"
        "If you did not request this, you can ignore this email.\n"
    )
    html = (
        f"<p>Hi {escape(name)},</p>"
        "<p>Please confirm this email address by clicking the button below:</p>"
        f"<a href='{escape(link, quote=True)}' target='_blank' style='{_BUTTON_STYLE}'>Verify email</a>"
        "<p><small>If you did not request this, you can ignore this email.</small></p>"
    )
    return MailMessage(to=to, subject="Verify your email", body=body, html=html)
