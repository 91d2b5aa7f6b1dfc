"""Feature request e-mails sent to the site administrator."""

import html
from datetime import datetime, timezone
from email.message import EmailMessage

SMTP_HOST = 'smtp.gmail.com'
SMTP_SSL_PORT = 465
SMTP_TIMEOUT_SECONDS = 20
MAX_TITLE_LEN = 200
MAX_DESCRIPTION_LEN = 5000


def build_feature_request_message(sender, recipient, title, description, user):
    requester = f"{user.get('firstName', '')} {user.get('lastName', '')}".strip()
    email = user.get('email', '')
    message = EmailMessage()
    message['Subject'] = f'StudyBuddy Feature Request: {title}'
    message['From'] = sender
    message['To'] = recipient
    message['Reply-To'] = email or sender
    message.set_content(
        f"New feature requested\n\nTitle: {title}\n\nDescription:\n{description}\n\n"
        f"Requested by: {requester} <{email}>\n"
    )
    message.add_alternative(
        '<h2>New Feature Requested</h2>'
        '<table>'
        f'<tr><th align="left">Title</th><td>{html.escape(title)}</td></tr>'
        f'<tr><th align="left">Description</th><td>{html.escape(description)}</td></tr>'
        f'<tr><th align="left">Requested By</th><td>{html.escape(requester)} &lt;{html.escape(email)}&gt;</td></tr>'
        '</table>'
        f'<p>&copy; {datetime.now(timezone.utc).year} StudyBuddy</p>',
        subtype='html',
    )
    return message


def request_feature(app_ctx, request, user):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    # Header values may not carry line breaks.
    title = ' '.join(str(data.get('title') or '').split())[:MAX_TITLE_LEN]
    description = str(data.get('description') or '').strip()[:MAX_DESCRIPTION_LEN]
    if not title or not description:
        return app_ctx.jsonify({'success': False, 'message': 'Title and description are required.'}), 400

    config = app_ctx.config
    if not (config.gmail_address and config.gmail_app_pass and config.admin_email):
        app_ctx.logger.warning('Feature request rejected: mail settings are not configured')
        return app_ctx.jsonify({'success': False, 'message': 'Feature requests are not configured.'}), 500

    message = build_feature_request_message(config.gmail_address, config.admin_email, title, description, user)
    try:
        with app_ctx.smtplib.SMTP_SSL(SMTP_HOST, SMTP_SSL_PORT, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
            smtp.login(config.gmail_address, config.gmail_app_pass)
            smtp.send_message(message)
    except (app_ctx.smtplib.SMTPException, OSError) as e:
        app_ctx.logger.error(f"Error sending feature request from user {user['_id']}: {e}")
        return app_ctx.jsonify({'success': False, 'message': 'Failed to send feature request.'}), 500

    return app_ctx.jsonify({'success': True, 'message': 'Feature request sent successfully!'})
