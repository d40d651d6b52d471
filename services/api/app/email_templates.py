from __future__ import annotations

import re

from services.api.app.schemas import EmailTemplate, TemplateCategory, TemplateValidation, TemplateVariable


VARIABLE_RE = re.compile(r"\{\{(\w+)\}\}")


DEFAULT_EMAIL_TEMPLATES: list[EmailTemplate] = [
    EmailTemplate(
        id="auto-reply-support",
        name="Auto Reply - Support",
        subject="Re: {{subject}}",
        content="""\
Thank you for contacting our support team.

We have received your message and created ticket #{{taskNumber}} to track your request.

Our team will review your message and respond within 24 hours during business days.

If this is urgent, please reply with "URGENT" in the subject line.

Best regards,
{{projectName}} Support Team

---
This is an automated response. Please do not reply to this email directly.""",
        category="auto-reply",
        variables=["subject", "taskNumber", "projectName"],
        is_default=True,
        description="Standard auto-reply for support requests",
    ),
    EmailTemplate(
        id="auto-reply-general",
        name="Auto Reply - General Inquiry",
        subject="Thank you for your message",
        content="""\
Hello,

Thank you for reaching out to us. We have received your message and will get back to you soon.

Ticket Reference: #{{taskNumber}}
Project: {{projectName}}

Expected Response Time: 2-3 business days

For faster support, please check our FAQ at {{websiteUrl}}/help

Best regards,
{{projectName}} Team""",
        category="auto-reply",
        variables=["taskNumber", "projectName", "websiteUrl"],
        is_default=True,
        description="General auto-reply for inquiries",
    ),
    EmailTemplate(
        id="auto-reply-out-of-hours",
        name="Auto Reply - Out of Hours",
        subject="Out of Hours - We'll respond soon",
        content="""\
Thank you for your email.

We have received your message outside of our normal business hours.

Business Hours: Monday-Friday, 9:00 AM - 6:00 PM {{timezone}}

Your ticket: #{{taskNumber}}

We will respond to your message during our next business day. For urgent matters, please contact our emergency line at {{emergencyPhone}}.

Best regards,
{{projectName}} Team""",
        category="auto-reply",
        variables=["taskNumber", "timezone", "emergencyPhone", "projectName"],
        is_default=True,
        description="Auto-reply for messages received outside business hours",
    ),
    EmailTemplate(
        id="welcome-new-customer",
        name="Welcome - New Customer",
        subject="Welcome to {{projectName}}!",
        content="""\
Welcome to {{projectName}}!

We're excited to have you on board. This email confirms that we've set up your account and you're ready to get started.

Your Support Details:
- Support Email: {{supportEmail}}
- Ticket Reference: #{{taskNumber}}
- Account Manager: {{assigneeName}}

Getting Started:
1. Visit our knowledge base at {{websiteUrl}}/docs
2. Join our community forum
3. Schedule an onboarding call if needed

If you have any questions, simply reply to this email and we'll help you out.

Welcome aboard!
{{projectName}} Team""",
        category="welcome",
        variables=["projectName", "supportEmail", "taskNumber", "assigneeName", "websiteUrl"],
        is_default=True,
        description="Welcome email for new customers",
    ),
    EmailTemplate(
        id="support-issue-resolved",
        name="Support - Issue Resolved",
        subject="Issue Resolved - {{subject}}",
        content="""\
Good news! We've resolved your support request.

Ticket: #{{taskNumber}}
Issue: {{subject}}
Resolution: {{resolution}}

The issue has been marked as resolved. If you're still experiencing problems or have any questions, please reply to this email and we'll reopen your ticket.

We'd love to hear your feedback about our support. Reply with:
- 👍 Great support!
- 👎 Could be better

Thank you for choosing {{projectName}}.

Best regards,
{{assigneeName}}
{{projectName}} Support Team""",
        category="support",
        variables=["subject", "taskNumber", "resolution", "projectName", "assigneeName"],
        is_default=True,
        description="Template for resolved support tickets",
    ),
    EmailTemplate(
        id="support-need-info",
        name="Support - Need More Information",
        subject="Re: {{subject}} - Additional Information Needed",
        content="""\
Hi {{customerName}},

Thank you for contacting us about: {{subject}}

Ticket: #{{taskNumber}}

To help us resolve your issue quickly, we need some additional information:

{{additionalInfoNeeded}}

Please reply to this email with the requested details, and we'll get back to you as soon as possible.

If you have any questions about what information we need, feel free to ask.

Best regards,
{{assigneeName}}
{{projectName}} Support Team""",
        category="support",
        variables=["subject", "customerName", "taskNumber", "additionalInfoNeeded", "assigneeName", "projectName"],
        is_default=True,
        description="Request additional information from customer",
    ),
    EmailTemplate(
        id="support-escalated",
        name="Support - Issue Escalated",
        subject="Escalated: {{subject}}",
        content="""\
Your support request has been escalated for priority handling.

Ticket: #{{taskNumber}}
Issue: {{subject}}
Escalated By: {{escalatedBy}}
Reason: {{escalationReason}}

Our senior team is now handling your request and will provide an update within {{escalationSla}} hours.

We apologize for any inconvenience and appreciate your patience.

You can track progress at: {{taskUrl}}

Best regards,
{{projectName}} Management Team""",
        category="support",
        variables=["taskNumber", "subject", "escalatedBy", "escalationReason", "escalationSla", "taskUrl", "projectName"],
        is_default=True,
        description="Notification for escalated support tickets",
    ),
    EmailTemplate(
        id="notification-task-assigned",
        name="Notification - Task Assignment",
        subject="Task Assigned: {{subject}}",
        content="""\
A new task has been assigned to you.

Task Details:
- Title: {{subject}}
- Task #: {{taskNumber}}
- Priority: {{priority}}
- Due Date: {{dueDate}}
- Project: {{projectName}}

Description:
{{description}}

You can view and update this task in your dashboard: {{taskUrl}}

Best regards,
{{projectName}} Team""",
        category="notification",
        variables=["subject", "taskNumber", "priority", "dueDate", "projectName", "description", "taskUrl"],
        is_default=True,
        description="Notification for task assignments",
    ),
    EmailTemplate(
        id="notification-status-update",
        name="Notification - Status Update",
        subject="Status Update: {{subject}}",
        content="""\
The status of your request has been updated.

Task: #{{taskNumber}} - {{subject}}
Previous Status: {{previousStatus}}
New Status: {{currentStatus}}
Updated By: {{updatedBy}}

{{statusComment}}

You can track progress at: {{taskUrl}}

Best regards,
{{projectName}} Team""",
        category="notification",
        variables=[
            "subject",
            "taskNumber",
            "previousStatus",
            "currentStatus",
            "updatedBy",
            "statusComment",
            "taskUrl",
            "projectName",
        ],
        is_default=True,
        description="Notification for status changes",
    ),
    EmailTemplate(
        id="custom-follow-up",
        name="Custom - Follow Up",
        subject="Following up on {{subject}}",
        content="""\
Hi {{customerName}},

We wanted to follow up on your recent request: {{subject}}

Ticket: #{{taskNumber}}

{{followUpMessage}}

Is there anything else we can help you with? Just reply to this email.

Best regards,
{{assigneeName}}
{{projectName}} Team""",
        category="custom",
        variables=["customerName", "subject", "taskNumber", "followUpMessage", "assigneeName", "projectName"],
        is_default=False,
        description="Follow-up email template",
    ),
    EmailTemplate(
        id="custom-meeting-scheduled",
        name="Custom - Meeting Scheduled",
        subject="Meeting Scheduled - {{subject}}",
        content="""\
Hi {{customerName}},

We've scheduled a meeting to discuss your request: {{subject}}

Meeting Details:
- Date: {{meetingDate}}
- Time: {{meetingTime}}
- Duration: {{meetingDuration}}
- Location/Link: {{meetingLink}}

Agenda:
{{meetingAgenda}}

If you need to reschedule, please reply to this email at least 24 hours in advance.

Looking forward to speaking with you!

Best regards,
{{assigneeName}}
{{projectName}} Team""",
        category="custom",
        variables=[
            "customerName",
            "subject",
            "meetingDate",
            "meetingTime",
            "meetingDuration",
            "meetingLink",
            "meetingAgenda",
            "assigneeName",
            "projectName",
        ],
        is_default=False,
        description="Meeting scheduling template",
    ),
    EmailTemplate(
        id="custom-feedback-request",
        name="Custom - Feedback Request",
        subject="How was your experience? - {{subject}}",
        content="""\
Hi {{customerName}},

We recently helped you with: {{subject}} (Ticket #{{taskNumber}})

We'd love to hear about your experience! Your feedback helps us improve our service.

Rate your experience:
⭐⭐⭐⭐⭐ Excellent
⭐⭐⭐⭐ Good
⭐⭐⭐ Average
⭐⭐ Below Average
⭐ Poor

What did we do well?
{{positivePoints}}

What could we improve?
{{improvementAreas}}

Simply reply to this email with your rating and comments.

Thank you for choosing {{projectName}}!

Best regards,
{{assigneeName}}
{{projectName}} Team""",
        category="custom",
        variables=[
            "customerName",
            "subject",
            "taskNumber",
            "positivePoints",
            "improvementAreas",
            "assigneeName",
            "projectName",
        ],
        is_default=False,
        description="Customer feedback request template",
    ),
]

TEMPLATE_CATEGORIES: list[TemplateCategory] = [
    TemplateCategory(value="auto-reply", label="Auto Reply", description="Automated responses to incoming emails"),
    TemplateCategory(value="welcome", label="Welcome", description="Welcome messages for new customers"),
    TemplateCategory(value="support", label="Support", description="Customer support communications"),
    TemplateCategory(value="notification", label="Notification", description="Status updates and notifications"),
    TemplateCategory(value="custom", label="Custom", description="Custom templates for specific needs"),
]

COMMON_VARIABLES: list[TemplateVariable] = [
    TemplateVariable(name=name, description=description)
    for name, description in [
        ("subject", "Original email subject"),
        ("taskNumber", "Generated task number"),
        ("projectName", "Name of the project"),
        ("customerName", "Customer name from email"),
        ("assigneeName", "Name of assigned team member"),
        ("supportEmail", "Support email address"),
        ("websiteUrl", "Company website URL"),
        ("taskUrl", "Direct link to the task"),
        ("priority", "Task priority level"),
        ("dueDate", "Task due date"),
        ("description", "Task description"),
        ("currentStatus", "Current task status"),
        ("previousStatus", "Previous task status"),
        ("updatedBy", "Who updated the status"),
        ("statusComment", "Comment about status change"),
        ("resolution", "How the issue was resolved"),
        ("escalatedBy", "Who escalated the ticket"),
        ("escalationReason", "Reason for escalation"),
        ("escalationSla", "SLA for escalated tickets"),
        ("timezone", "Business timezone"),
        ("emergencyPhone", "Emergency contact number"),
        ("additionalInfoNeeded", "List of needed information"),
        ("followUpMessage", "Custom follow-up message"),
        ("meetingDate", "Scheduled meeting date"),
        ("meetingTime", "Scheduled meeting time"),
        ("meetingDuration", "Meeting duration"),
        ("meetingLink", "Meeting link or location"),
        ("meetingAgenda", "Meeting agenda"),
        ("positivePoints", "What went well"),
        ("improvementAreas", "Areas for improvement"),
    ]
]

_CATEGORY_VALUES = {c.value for c in TEMPLATE_CATEGORIES}


def get_default_templates() -> list[EmailTemplate]:
    return DEFAULT_EMAIL_TEMPLATES


def get_templates_by_category(category: str) -> list[EmailTemplate]:
    return [t for t in DEFAULT_EMAIL_TEMPLATES if t.category == category]


def get_template_by_id(template_id: str) -> EmailTemplate | None:
    return next((t for t in DEFAULT_EMAIL_TEMPLATES if t.id == template_id), None)


def get_default_templates_for_category(category: str) -> list[EmailTemplate]:
    return [t for t in DEFAULT_EMAIL_TEMPLATES if t.category == category and t.is_default]


def search_templates(query: str) -> list[EmailTemplate]:
    q = query.lower()
    return [
        t
        for t in DEFAULT_EMAIL_TEMPLATES
        if q in t.name.lower() or q in (t.description or "").lower() or q in t.subject.lower()
    ]


def extract_variables(subject: str, content: str) -> list[str]:
    return sorted(set(VARIABLE_RE.findall(subject or "")) | set(VARIABLE_RE.findall(content or "")))


def validate_template(
    *,
    name: str | None = None,
    subject: str | None = None,
    content: str | None = None,
    category: str | None = None,
    variables: list[str] | None = None,
) -> TemplateValidation:
    """
    Check a draft template.

    When `variables` is given it must match the placeholders actually used in the subject and
    content; mismatches are reported in both directions.
    """
    errors: list[str] = []
    if not (name or "").strip():
        errors.append("Template name is required")
    if not (subject or "").strip():
        errors.append("Template subject is required")
    if not (content or "").strip():
        errors.append("Template content is required")
    if not category:
        errors.append("Template category is required")
    elif category not in _CATEGORY_VALUES:
        errors.append("Invalid template category")

    if variables is not None:
        found = list(dict.fromkeys(VARIABLE_RE.findall(subject or "") + VARIABLE_RE.findall(content or "")))
        unused = [v for v in variables if v not in found]
        undeclared = [v for v in found if v not in variables]
        if unused:
            errors.append(f"Variables listed but not used in template: {', '.join(unused)}")
        if undeclared:
            errors.append(f"Variables used in template but not listed: {', '.join(undeclared)}")

    return TemplateValidation(is_valid=not errors, errors=errors)


def render_template(template: EmailTemplate, values: dict[str, str | None]) -> tuple[str, str]:
    """Substitute the given values; a given key with an empty value renders as "", unknown placeholders stay."""
    subject, content = template.subject, template.content
    for key, value in values.items():
        placeholder = "{{" + key + "}}"
        subject = subject.replace(placeholder, value or "")
        content = content.replace(placeholder, value or "")
    return subject, content
