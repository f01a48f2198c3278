"""
Transactional mail: dispatcher boundary, SMTP transport and templates.
"""

from authflow.kernel.mail.dispatcher import MailDispatcher, MailMessage, SmtpMailDispatcher
from authflow.kernel.mail.templates import build_link, reset_password_email, verify_email_email

__all__ = [
    "MailDispatcher",
    "MailMessage",
    "SmtpMailDispatcher",
    "build_link",
    "reset_password_email",
    "verify_email_email",
]
