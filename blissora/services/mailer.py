# blissora/services/mailer.py
import logging
from concurrent.futures import ThreadPoolExecutor
from html import escape

import resend

log = logging.getLogger(__name__)

WELCOME_SUBJECT = "Welcome to Blissora - Registration Successful!"
WELCOME_MESSAGE = (
    "Your account has been successfully created. Welcome to our community! "
    "You can now access all features and start exploring."
)


def build_notice_html(name, subject, message, cta_url, cta_text="Get Started", color="#4f46e5"):
    return f"""\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; border: 1px solid #e5e7eb; border-radius: 8px;">
  <div style="background: {color}; color: white; padding: 30px; text-align: center;">
    <h1 style="margin: 0; font-size: 28px;">{escape(subject)}</h1>
  </div>
  <div style="padding: 40px; background: #f9fafb;">
    <h2 style="color: #1f2937;">Hello {escape(name or "there")},</h2>
    <p style="color: #4b5563; font-size: 16px; line-height: 1.6;">{escape(message)}</p>
    <p style="text-align: center; margin: 30px 0;">
      <a href="{escape(cta_url)}" style="background: {color}; color: white; padding: 12px 30px; text-decoration: none; border-radius: 6px;">{escape(cta_text)}</a>
    </p>
    <p style="color: #6b7280; font-size: 14px;">Best regards,<br><strong>The Blissora Team</strong></p>
  </div>
</div>"""


class Mailer:
    """Fire-and-forget mail delivery through Resend.

    ``send`` hands the payload to a small worker pool and returns at once;
    delivery failures are logged, never raised to the caller.
    """

    def __init__(self, app=None):
        self.enabled = False
        self.sender = None
        self.client_url = None
        self._api_key = None
        self._pool = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.enabled = bool(app.config.get("MAIL_ENABLED"))
        self.sender = app.config.get("MAIL_FROM")
        self.client_url = app.config.get("CLIENT_URL")
        self._api_key = app.config.get("RESEND_API_KEY")
        if self.enabled and self._pool is None:
            self._pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="mailer")
        app.extensions["blissora_mailer"] = self

    def _deliver(self, payload):
        resend.api_key = self._api_key
        response = resend.Emails.send(payload)
        if not isinstance(response, dict) or not response.get("id"):
            raise RuntimeError(f"unexpected resend response: {response!r}")
        log.info("mail sent to %s (%s)", payload["to"], response["id"])
        return response

    @staticmethod
    def _report(future):
        exc = future.exception()
        if exc is not None:
            log.error("mail delivery failed: %s", exc)

    def send(self, to, subject, html):
        if not self.enabled:
            log.info("mail disabled; skipping %r to %s", subject, to)
            return None
        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        future = self._pool.submit(self._deliver, payload)
        future.add_done_callback(self._report)
        return future

    def send_welcome(self, email, name):
        html = build_notice_html(name, WELCOME_SUBJECT, WELCOME_MESSAGE, self.client_url)
        return self.send(email, WELCOME_SUBJECT, html)
