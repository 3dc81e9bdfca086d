import asyncio
import html
import logging
import smtplib
from concurrent.futures import ThreadPoolExecutor
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from smarttutors import config

logger = logging.getLogger(__name__)

# Thread pool for async email sending
executor = ThreadPoolExecutor(max_workers=3)

# SMTP Configuration for different providers
SMTP_CONFIGS = {
    'gmail': {'host': 'smtp.gmail.com', 'port': 587, 'use_tls': True},
    'outlook': {'host': 'smtp-mail.outlook.com', 'port': 587, 'use_tls': True},
    'yahoo': {'host': 'smtp.mail.yahoo.com', 'port': 587, 'use_tls': True},
    'office365': {'host': 'smtp.office365.com', 'port': 587, 'use_tls': True},
    'custom': {'host': config.SMTP_HOST, 'port': config.SMTP_PORT, 'use_tls': True},
}

# Title, colours and lead sentence per new status
STATUS_STYLES = {
    'selected-for-demo': {
        'color': '#8b5cf6',
        'bg_color': '#f5f3ff',
        'title': 'You have been Selected for a Demo Class',
        'emoji': '📅',
        'message': 'Good news! The guardian would like to see a demo class from you.',
    },
    'confirmed-fee-pending': {
        'color': '#10b981',
        'bg_color': '#ecfdf5',
        'title': 'Congratulations! Your Application has been Confirmed',
        'emoji': '✅',
        'message': 'Great news! Your application has been accepted. Please clear the media fee to proceed.',
    },
    'completed': {
        'color': '#3b82f6',
        'bg_color': '#eff6ff',
        'title': 'Tuition Completed Successfully',
        'emoji': '🎓',
        'message': 'Congratulations! You have successfully completed this tuition.',
    },
    'rejected': {
        'color': '#ef4444',
        'bg_color': '#fef2f2',
        'title': 'Application Update: Not Selected',
        'emoji': '❌',
        'message': 'Unfortunately, your application was not selected for this position.',
    },
    'withdrawn': {
        'color': '#6b7280',
        'bg_color': '#f9fafb',
        'title': 'Application Withdrawn',
        'emoji': '📤',
        'message': 'Your application has been withdrawn.',
    },
}

DEFAULT_STYLE = {
    'color': '#374151',
    'bg_color': '#f3f4f6',
    'title': 'Application Status Updated',
    'emoji': '📄',
    'message': 'Your application status has been updated.',
}


def detect_email_provider(email_address):
    """Auto-detect email provider from email address"""
    email_lower = email_address.lower()
    if '@gmail.com' in email_lower:
        return 'gmail'
    elif '@outlook.com' in email_lower or '@hotmail.com' in email_lower:
        return 'outlook'
    elif '@yahoo.com' in email_lower:
        return 'yahoo'
    else:
        return 'custom'


def get_smtp_config():
    """Get SMTP configuration based on provider"""
    provider = config.MAIL_PROVIDER
    if provider == 'auto':
        provider = detect_email_provider(config.MAIL_USERNAME or '')
        logger.debug("Auto-detected mail provider: %s", provider)

    return SMTP_CONFIGS.get(provider, SMTP_CONFIGS['custom'])


def send_email_sync(to_email, subject, html_content, text_content=None):
    """Send one message over SMTP. Returns False when not configured; raises on SMTP errors."""
    sender_email = config.MAIL_USERNAME
    sender_password = config.MAIL_PASSWORD

    if not sender_email or not sender_password:
        logger.warning("Email credentials not configured; not sending '%s' to %s", subject, to_email)
        return False

    smtp_config = get_smtp_config()

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = f"{config.MAIL_FROM_NAME} <{sender_email}>"
    message["To"] = to_email

    if text_content:
        message.attach(MIMEText(text_content, "plain"))
    message.attach(MIMEText(html_content, "html"))

    with smtplib.SMTP(smtp_config['host'], smtp_config['port'], timeout=30) as server:
        server.ehlo()
        if smtp_config['use_tls']:
            server.starttls()
            server.ehlo()
        server.login(sender_email, sender_password)
        server.send_message(message)

    logger.info("Email sent to %s", to_email)
    return True


async def send_email(to_email, subject, html_content, text_content=None):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, send_email_sync, to_email, subject, html_content, text_content)


def render_status_update_email(payload: dict):
    """Build (subject, html, text) for an application status change."""
    new_status = payload["new_status"]
    style = STATUS_STYLES.get(new_status, DEFAULT_STYLE)
    tuition = payload.get("tuition") or {}
    tutor_name = html.escape(payload.get("tutor_name") or "Tutor")
    dashboard_url = f"{config.SITE_URL}/tutor/dashboard"

    subjects = ", ".join(tuition.get("subjects") or []) or "N/A"
    code = tuition.get("code") or "N/A"

    subject = f"{style['emoji']} Application Update - {code}"

    feedback_block = ""
    if payload.get("message"):
        feedback_block = f"""
        <div style="background-color:#fef3c7;border-left:4px solid #f59e0b;padding:15px;margin-bottom:25px;">
          <h4 style="color:#92400e;margin:0 0 10px;">💬 Feedback</h4>
          <p style="color:#78350f;margin:0;font-style:italic;">"{html.escape(payload['message'])}"</p>
        </div>"""

    demo_block = ""
    if payload.get("demo_date"):
        demo_block = f"""
        <div style="background-color:#dbeafe;border-left:4px solid #3b82f6;padding:15px;margin-bottom:25px;">
          <h4 style="color:#1e40af;margin:0 0 10px;">📅 Demo Scheduled</h4>
          <p style="color:#1e3a8a;margin:0;">Demo Date: <strong>{html.escape(str(payload['demo_date'])[:10])}</strong></p>
        </div>"""

    next_steps = ""
    if new_status == 'confirmed-fee-pending':
        next_steps = """
        <div style="background-color:#ecfdf5;padding:20px;border-radius:8px;margin-bottom:25px;">
          <h4 style="color:#065f46;margin:0 0 15px;">🚀 Next Steps</h4>
          <ul style="color:#047857;margin:0;padding-left:20px;">
            <li>Pay the media fee to receive the guardian's contact</li>
            <li>Contact the guardian to arrange the first class</li>
            <li>Confirm the schedule and payment terms</li>
          </ul>
        </div>"""
    elif new_status == 'rejected':
        next_steps = """
        <div style="background-color:#fef2f2;padding:20px;border-radius:8px;margin-bottom:25px;">
          <h4 style="color:#991b1b;margin:0 0 15px;">💪 Keep Going!</h4>
          <p style="color:#7f1d1d;margin:0;">There are many other opportunities available. Keep applying and improving your profile.</p>
        </div>"""

    html_content = f"""
<!DOCTYPE html>
<html>
<body style="margin:0;padding:20px;font-family:Arial,sans-serif;background:#f9fafb;">
  <div style="max-width:600px;margin:0 auto;background:#fff;padding:30px;border-radius:10px;box-shadow:0 2px 10px rgba(0,0,0,0.1);">
    <div style="text-align:center;margin-bottom:30px;">
      <h1 style="color:#7c3aed;font-size:24px;margin:0;">Smart Tutors</h1>
    </div>
    <div style="background-color:{style['bg_color']};padding:20px;border-radius:8px;text-align:center;margin-bottom:25px;">
      <h2 style="color:{style['color']};margin:0 0 10px;font-size:22px;">{style['title']}</h2>
      <p style="color:#374151;font-size:16px;margin:0;">Hello {tutor_name}, {style['message']}</p>
    </div>
    <div style="background-color:#f8fafc;padding:20px;border-radius:8px;margin-bottom:25px;">
      <h3 style="color:#1f2937;margin:0 0 15px;">Tuition Details</h3>
      <p style="margin:8px 0;color:#374151;"><strong>Tuition Code:</strong> {html.escape(code)}</p>
      <p style="margin:8px 0;color:#374151;"><strong>Class:</strong> {html.escape(tuition.get('class_name') or 'N/A')}</p>
      <p style="margin:8px 0;color:#374151;"><strong>Subjects:</strong> {html.escape(subjects)}</p>
      <p style="margin:8px 0;color:#374151;"><strong>Location:</strong> {html.escape(tuition.get('location') or 'N/A')}</p>
      <p style="margin:8px 0;color:#374151;"><strong>Salary:</strong> {html.escape(str(tuition.get('salary') or 'N/A'))}</p>
      <p style="margin:8px 0;color:#374151;"><strong>Status:</strong>
        <span style="background-color:{style['color']};color:#fff;padding:4px 8px;border-radius:4px;font-size:12px;font-weight:bold;">{new_status.upper()}</span>
      </p>
    </div>
    {feedback_block}
    {demo_block}
    {next_steps}
    <div style="text-align:center;margin-bottom:25px;">
      <a href="{dashboard_url}" style="background-color:#7c3aed;color:#fff;padding:12px 24px;text-decoration:none;border-radius:6px;display:inline-block;font-weight:bold;">View Dashboard</a>
    </div>
    <div style="border-top:1px solid #e5e7eb;padding-top:20px;text-align:center;">
      <p style="color:#9ca3af;font-size:14px;margin:0;">Best regards,<br><strong>The Smart Tutors Team</strong></p>
    </div>
  </div>
</body>
</html>
    """

    text_content = f"""
Hello {payload.get('tutor_name') or 'Tutor'},

{style['message']}

Tuition: {code}
Status: {payload.get('old_status')} -> {new_status}
{('Feedback: ' + payload['message']) if payload.get('message') else ''}

Dashboard: {dashboard_url}

---
Smart Tutors
    """

    return subject, html_content, text_content


async def send_status_update_email(payload: dict):
    subject, html_content, text_content = render_status_update_email(payload)
    return await send_email(payload["tutor_email"], subject, html_content, text_content)
