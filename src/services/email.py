"""
Email sending through MS Graph, plus the message bodies the app sends.
"""

import logging
import traceback
from dataclasses import dataclass
from html import escape

from msgraph.generated.models.body_type import BodyType
from msgraph.generated.models.email_address import EmailAddress
from msgraph.generated.models.file_attachment import FileAttachment
from msgraph.generated.models.item_body import ItemBody
from msgraph.generated.models.message import Message
from msgraph.generated.models.recipient import Recipient
from msgraph.generated.users.item.send_mail.send_mail_post_request_body import (
    SendMailPostRequestBody,
)

from core.config import APP_BASE_URL, ERROR_EMAIL, FROM_EMAIL
from core.duration import calculate_request_duration, format_duration

logger = logging.getLogger(__name__)

PROVIDER = "msgraph"


@dataclass
class EmailResult:
    success: bool
    provider_id: str | None = None
    error: str | None = None


@dataclass
class Attachment:
    name: str
    content_type: str
    content: bytes


async def send_email(
    graph,
    recipients: list[str],
    subject: str,
    html: str,
    text: str | None = None,
    attachments: list[Attachment] | None = None,
) -> EmailResult:
    """
    Send one HTML email from FROM_EMAIL.

    Never raises: delivery problems come back as EmailResult(success=False).
    The plain-text alternative is only used when no HTML is given, since
    Graph messages carry a single body.
    """
    if not recipients:
        return EmailResult(success=False, error="No recipients")

    if html:
        body = ItemBody(content_type=BodyType.Html, content=html)
    else:
        body = ItemBody(content_type=BodyType.Text, content=text or "")

    message = Message(
        subject=subject,
        body=body,
        to_recipients=[Recipient(email_address=EmailAddress(address=r)) for r in recipients],
    )
    if attachments:
        message.attachments = [
            FileAttachment(
                odata_type="#microsoft.graph.fileAttachment",
                name=a.name,
                content_type=a.content_type,
                content_bytes=a.content,
            )
            for a in attachments
        ]

    request_body = SendMailPostRequestBody(message=message, save_to_sent_items=True)

    try:
        await graph.users.by_user_id(FROM_EMAIL).send_mail.post(request_body)
    except Exception as e:
        logger.error("Failed to send '%s' to %s: %s", subject, ", ".join(recipients), e)
        return EmailResult(success=False, provider_id=PROVIDER, error=str(e))

    logger.info("Sent '%s' to %s", subject, ", ".join(recipients))
    return EmailResult(success=True, provider_id=PROVIDER)


async def send_error_email(graph, error: Exception, context: str = "Vacation script"):
    """Send error notification email."""
    subject = f"{context} - Error"
    body_text = f"An error occurred in {context.lower()}:\n\n{error}\n\n{traceback.format_exc()}"

    result = await send_email(graph, [ERROR_EMAIL], subject, "", text=body_text)
    if result.success:
        print(f"Sent error email to {ERROR_EMAIL}")
    else:
        print(f"Failed to send error email: {result.error}")
    return result


# =============================================================================
# MESSAGE BODIES
# =============================================================================


def admin_request_url(request_id: str) -> str:
    return f"{APP_BASE_URL}/admin/vacation-requests/{request_id}"


def _page(title: str, content: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{escape(title)}</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 800px; margin: 0 auto; padding: 20px;">
{content}
<p style="margin-top: 20px; color: #9ca3af; font-size: 12px;">Stars Vacation Management System</p>
</body>
</html>"""


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def build_admin_notification_email(request: dict) -> tuple[str, str, str]:
    """Subject, HTML and text for a newly submitted request."""
    name = request.get("user_name") or "Unknown"
    duration = format_duration(calculate_request_duration(request))
    subject = f"New vacation request from {name}"
    url = admin_request_url(request["id"])

    details = [
        ("Employee", name),
        ("Company", request.get("company") or "Unknown"),
        ("Type", request.get("type") or "Other"),
        ("Dates", f"{request['start_date']} - {request.get('end_date') or request['start_date']}"),
        ("Duration", duration),
    ]
    if request.get("reason"):
        details.append(("Reason", request["reason"]))

    rows = "".join(
        f"<tr><td style=\"padding: 6px 12px; font-weight: 600;\">{label}</td>"
        f"<td style=\"padding: 6px 12px;\">{escape(str(value))}</td></tr>"
        for label, value in details
    )
    html = _page(
        subject,
        f"<h2>{escape(subject)}</h2><table>{rows}</table>"
        f"<p><a href=\"{url}\">Review request</a></p>",
    )
    text = "\n".join([subject, ""] + [f"{label}: {value}" for label, value in details] + ["", url])
    return subject, html, text


def build_decision_email(request: dict) -> tuple[str, str, str]:
    """Subject, HTML and text telling the requester about the review outcome."""
    status = request.get("status") or "Pending"
    dates = f"{request['start_date']} - {request.get('end_date') or request['start_date']}"
    subject = f"Your vacation request has been {status.lower()}"

    name = request.get("user_name")
    lines = [
        f"Hello {name}," if name else "Hello,",
        f"Your vacation request for {dates} has been {status.lower()}.",
    ]
    if request.get("reviewed_by"):
        lines.append(f"Reviewed by: {request['reviewed_by']}")
    if request.get("admin_comment"):
        lines.append(f"Comment: {request['admin_comment']}")

    html = _page(subject, "".join(f"<p>{escape(line)}</p>" for line in lines))
    return subject, html, "\n\n".join(lines)


def build_pending_reminder_email(requests: list[dict]) -> tuple[str, str, str]:
    """Digest of pending requests for the admins."""
    count = len(requests)
    subject = f"Pending vacation requests - reminder ({_plural(count, 'request')})"
    admin_url = f"{APP_BASE_URL}/admin/vacation-requests"

    rows = []
    text_lines = [f"You have {_plural(count, 'pending vacation request')} awaiting review.", ""]
    for idx, req in enumerate(requests, start=1):
        name = req.get("user_name") or "Unknown"
        dates = f"{req.get('start_date', '')} - {req.get('end_date', '')}"
        days = format_duration(calculate_request_duration(req))
        submitted = (req.get("created_at") or "")[:10]
        rows.append(
            "<tr>"
            f"<td style=\"padding: 8px;\">{escape(name)}</td>"
            f"<td style=\"padding: 8px;\">{escape(dates)}</td>"
            f"<td style=\"padding: 8px;\">{escape(req.get('type') or 'Other')}</td>"
            f"<td style=\"padding: 8px; text-align: center;\">{days}</td>"
            f"<td style=\"padding: 8px;\">{submitted}</td>"
            f"<td style=\"padding: 8px;\"><a href=\"{admin_request_url(req['id'])}\">Review</a></td>"
            "</tr>"
        )
        text_lines.append(f"{idx}. {name}: {dates} ({days}), submitted {submitted}")

    html = _page(
        subject,
        f"<h2>Pending Vacation Requests - Reminder</h2>"
        f"<p>You have <strong>{count}</strong> pending request{'' if count == 1 else 's'} "
        f"awaiting review.</p>"
        "<table style=\"width: 100%; border-collapse: collapse;\"><thead><tr>"
        "<th align=\"left\">Employee</th><th align=\"left\">Dates</th><th align=\"left\">Type</th>"
        "<th>Days</th><th align=\"left\">Submitted</th><th>Action</th>"
        f"</tr></thead><tbody>{''.join(rows)}</tbody></table>"
        f"<p><a href=\"{admin_url}\">Review Requests</a></p>"
        "<p style=\"color: #6b7280; font-size: 14px;\">This reminder is sent every few days "
        "while requests remain pending.</p>",
    )
    text_lines += ["", admin_url]
    return subject, html, "\n".join(text_lines)
