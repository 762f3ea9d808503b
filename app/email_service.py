# app/email_service.py
import os
import smtplib
from email.message import EmailMessage
from html import escape

import requests

from app.config import settings


def _get_env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name, default)
    if v in ("", None):
        return default
    return v


def _send_email(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
) -> bool:
    """
    Invio email.
    Provider selezionabile via env:
    - EMAIL_PROVIDER=resend  (consigliato in produzione)
    - EMAIL_PROVIDER=smtp    (fallback)
    Se EMAIL_ENABLED != "1" non fa nulla (safe per dev) e ritorna False.
    """
    enabled = _get_env("EMAIL_ENABLED", "0")
    if enabled != "1":
        return False

    provider = (_get_env("EMAIL_PROVIDER", "smtp") or "smtp").lower().strip()

    # ------------------------
    # RESEND (HTTP API)
    # ------------------------
    if provider == "resend":
        api_key = _get_env("RESEND_API_KEY")
        from_email = _get_env("FROM_EMAIL") or _get_env("SMTP_FROM")  # fallback
        reply_to = _get_env("REPLY_TO_EMAIL") or _get_env("SMTP_REPLY_TO")

        if not api_key or not from_email:
            raise RuntimeError("RESEND_API_KEY / FROM_EMAIL missing from environment.")

        payload: dict = {
            "from": from_email,
            "to": [to_email],
            "subject": subject,
            "text": text_body,
        }
        if html_body:
            payload["html"] = html_body
        if reply_to:
            payload["reply_to"] = reply_to

        r = requests.post(
            "https://api.resend.com/emails",
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
            timeout=15,
        )

        if r.status_code >= 300:
            raise RuntimeError(f"Resend send failed: {r.status_code} {r.text}")

        return True

    # ------------------------
    # SMTP (fallback)
    # ------------------------
    host = _get_env("SMTP_HOST")
    port = int(_get_env("SMTP_PORT", "587") or "587")
    user = _get_env("SMTP_USER")
    password = _get_env("SMTP_PASS")
    from_email = _get_env("SMTP_FROM", user)
    from_name = _get_env("SMTP_FROM_NAME", "")
    reply_to = _get_env("SMTP_REPLY_TO")
    use_tls = _get_env("SMTP_TLS", "1") == "1"

    if not host or not from_email:
        raise RuntimeError("SMTP_HOST/SMTP_FROM missing from environment.")

    from_header = f"{from_name} <{from_email}>" if from_name else from_email

    msg = EmailMessage()
    msg["From"] = from_header
    msg["To"] = to_email
    msg["Subject"] = subject
    if reply_to:
        msg["Reply-To"] = reply_to

    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")

    with smtplib.SMTP(host, port, timeout=20) as server:
        server.ehlo()
        if use_tls:
            server.starttls()
            server.ehlo()
        if user and password:
            server.login(user, password)
        server.send_message(msg)

    return True


def _credentials_block_html(enrollment_code: str, temp_password: str) -> str:
    return f"""
      <div style="padding:14px;border:1px solid #e5e5e5;border-radius:10px;margin:16px 0;">
        <div style="font-size:12px;color:#666;margin-bottom:6px;">Your login details</div>
        <div style="font-size:14px;">
          <b>Enrollment ID:</b> {escape(enrollment_code)}<br/>
          <b>Temporary password:</b> <span style="font-family:monospace;">{escape(temp_password)}</span>
        </div>
      </div>
    """


# =================================================
# WELCOME — iscrizione creata (password temporanea)
# =================================================
def send_welcome_email(
    to_email: str,
    full_name: str,
    enrollment_code: str,
    package: str,
    temp_password: str,
) -> bool:
    """
    Consegna out-of-band della password temporanea: non viene mai
    restituita nella risposta di creazione.
    """
    subject = f"Welcome aboard — enrollment {enrollment_code} ✅"
    login_url = settings.frontend_url.rstrip("/") + "/login"

    text_body = "\n".join(
        [
            f"Hello {full_name},",
            "",
            "Your pre-launch enrollment has been received.",
            "",
            f"Enrollment ID: {enrollment_code}",
            f"Package: {package}",
            f"Temporary password: {temp_password}",
            "",
            f"Log in at {login_url} and change your password from your profile.",
            "",
            "Best regards,",
            "The Enrollment Team",
        ]
    )

    html_body = f"""
    <div style="font-family:Arial,Helvetica,sans-serif;font-size:14px;line-height:1.6;color:#111;">
      <p>Hello {escape(full_name)},</p>

      <p>Your pre-launch enrollment (<b>{escape(package)}</b>) has been received.</p>
      {_credentials_block_html(enrollment_code, temp_password)}
      <p>Log in at <a href="{escape(login_url)}">{escape(login_url)}</a> and change your password from your profile.</p>

      <p style="margin-top:18px;color:#444;">Best regards,<br/><b>The Enrollment Team</b></p>
    </div>
    """.strip()

    return _send_email(to_email=to_email, subject=subject, text_body=text_body, html_body=html_body)


# =================================================
# RESET PASSWORD (admin)
# =================================================
def send_password_reset_email(
    to_email: str,
    full_name: str,
    enrollment_code: str,
    temp_password: str,
) -> bool:
    subject = f"Your new temporary password — {enrollment_code}"

    text_body = "\n".join(
        [
            f"Hello {full_name},",
            "",
            "An administrator has reset your password.",
            "",
            f"Enrollment ID: {enrollment_code}",
            f"Temporary password: {temp_password}",
            "",
            "Please change it after your next login.",
            "",
            "The Enrollment Team",
        ]
    )

    html_body = f"""
    <div style="font-family:Arial,Helvetica,sans-serif;font-size:14px;line-height:1.6;color:#111;">
      <p>Hello {escape(full_name)},</p>
      <p>An administrator has reset your password.</p>
      {_credentials_block_html(enrollment_code, temp_password)}
      <p>Please change it after your next login.</p>
    </div>
    """.strip()

    return _send_email(to_email=to_email, subject=subject, text_body=text_body, html_body=html_body)
