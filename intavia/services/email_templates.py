"""
Email templates keyed by notification kind.

Each kind has a subject line, an HTML body extending the shared layout, and a
plain-text body.
"""
from dataclasses import dataclass
from typing import Any, Dict

from jinja2 import DictLoader, Environment, select_autoescape


@dataclass
class RenderedEmail:
    subject: str
    html: str
    text: str


_BASE_HTML = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{{ title }}</title></head>
<body style="font-family: Arial, sans-serif; color: #1f2937; line-height: 1.6;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: #386B43; color: #ffffff; padding: 24px; border-radius: 8px 8px 0 0; text-align: center;">
      <h1 style="margin: 0; font-size: 24px;">{% block heading %}{% endblock %}</h1>
    </div>
    <div style="background: #ffffff; padding: 24px; border: 1px solid #e5e7eb; border-top: none;">
      {% block content %}{% endblock %}
      {% if action_url %}
      <p style="text-align: center; margin: 28px 0;">
        <a href="{{ action_url }}" style="background: #386B43; color: #ffffff; padding: 12px 24px; text-decoration: none; border-radius: 6px;">{{ action_label }}</a>
      </p>
      {% endif %}
    </div>
    <p style="color: #6b7280; font-size: 12px; text-align: center;">This email was sent by the {{ app_name }} hiring platform.</p>
  </div>
</body>
</html>
"""

_HTML = {
    "invite-sent": """{% extends "base.html" %}
{% block heading %}You're invited to {{ company_name }}{% endblock %}
{% block content %}
<p>Hi {{ invitee_name or "there" }},</p>
<p><strong>{{ inviter_name }}</strong> invited you to join <strong>{{ company_name }}</strong> on {{ app_name }} as <strong>{{ role }}</strong>.</p>
{% if expires_at %}<p>This invitation expires on {{ expires_at }}.</p>{% endif %}
{% endblock %}""",
    "invite-accepted": """{% extends "base.html" %}
{% block heading %}Invitation accepted{% endblock %}
{% block content %}
<p>Hi {{ inviter_name }},</p>
<p><strong>{{ invitee_name }}</strong> accepted your invitation and joined {{ company_name }} as <strong>{{ role }}</strong>.</p>
{% endblock %}""",
    "invite-rejected": """{% extends "base.html" %}
{% block heading %}Invitation declined{% endblock %}
{% block content %}
<p>Hi {{ inviter_name }},</p>
<p><strong>{{ invitee_name }}</strong> declined your invitation to join {{ company_name }} as {{ role }}.</p>
{% endblock %}""",
    "job-permission-granted": """{% extends "base.html" %}
{% block heading %}Job access granted{% endblock %}
{% block content %}
<p>Hi {{ recipient_name }},</p>
<p><strong>{{ granter_name }}</strong> granted you <strong>{{ permission_level | capitalize }}</strong> access to the job <strong>{{ job_title }}</strong> at {{ company_name }}.</p>
{% endblock %}""",
    "interview-reminder": """{% extends "base.html" %}
{% block heading %}Interview reminder{% endblock %}
{% block content %}
<p>Hi {{ candidate_name }},</p>
<p>Your interview for <strong>{{ job_title }}</strong> at {{ company_name }} starts soon.</p>
<ul>
  <li>Date: {{ interview_date }}</li>
  <li>Time: {{ interview_time }} ({{ timezone }})</li>
  <li>Duration: {{ duration }} minutes</li>
</ul>
{% endblock %}""",
    "interview-cancellation": """{% extends "base.html" %}
{% block heading %}Interview cancelled{% endblock %}
{% block content %}
<p>Hi {{ candidate_name }},</p>
<p>Your interview for <strong>{{ job_title }}</strong> at {{ company_name }} on {{ interview_date }} at {{ interview_time }} ({{ timezone }}) has been cancelled.</p>
{% if reason %}<p>Reason: {{ reason }}</p>{% endif %}
{% endblock %}""",
    "interview-rescheduled": """{% extends "base.html" %}
{% block heading %}Interview rescheduled{% endblock %}
{% block content %}
<p>Hi {{ candidate_name }},</p>
<p>Your interview for <strong>{{ job_title }}</strong> at {{ company_name }} has moved to a new time.</p>
<ul>
  <li>Date: {{ interview_date }}</li>
  <li>Time: {{ interview_time }} ({{ timezone }})</li>
  <li>Duration: {{ duration }} minutes</li>
</ul>
{% endblock %}""",
    "demo-request": """{% extends "base.html" %}
{% block heading %}New demo request{% endblock %}
{% block content %}
<ul>
  <li>Name: {{ name }}</li>
  <li>Email: {{ email }}</li>
  <li>Company: {{ company }}</li>
  {% if phone %}<li>Phone: {{ phone }}</li>{% endif %}
  {% if team_size %}<li>Team size: {{ team_size }}</li>{% endif %}
</ul>
{% if message %}<p>{{ message }}</p>{% endif %}
{% endblock %}""",
    "trial-ending": """{% extends "base.html" %}
{% block heading %}Your trial ends soon{% endblock %}
{% block content %}
<p>Hi {{ user_name }},</p>
<p>Your {{ plan_id }} trial ends on <strong>{{ trial_end }}</strong> ({{ days_left }} day{{ "s" if days_left != 1 else "" }} left). Choose a plan to keep hiring without interruption.</p>
{% endblock %}""",
    "payment-failed": """{% extends "base.html" %}
{% block heading %}Payment failed{% endblock %}
{% block content %}
<p>Hi {{ user_name }},</p>
<p>We could not collect payment of <strong>{{ amount }} {{ currency }}</strong> for invoice {{ invoice_id }}. Please update your payment method to avoid losing access.</p>
{% endblock %}""",
    "subscription-expiring": """{% extends "base.html" %}
{% block heading %}Your subscription is ending{% endblock %}
{% block content %}
<p>Hi {{ user_name }},</p>
<p>Your {{ plan_id }} subscription is set to end on <strong>{{ period_end }}</strong> ({{ days_left }} day{{ "s" if days_left != 1 else "" }} left). Reactivate it any time before then to keep your data and team access.</p>
{% endblock %}""",
    "past-due-final-notice": """{% extends "base.html" %}
{% block heading %}Final notice: payment overdue{% endblock %}
{% block content %}
<p>Hi {{ user_name }},</p>
<p>Your subscription has been past due since <strong>{{ past_due_since }}</strong>. Update your payment method now or the subscription will be canceled.</p>
{% endblock %}""",
    "contract-signed": """{% extends "base.html" %}
{% block heading %}Contract signed{% endblock %}
{% block content %}
<p>Hi {{ recipient_name }},</p>
<p><strong>{{ candidate_name }}</strong> signed the contract for <strong>{{ job_title }}</strong> on {{ signed_at }}.</p>
{% endblock %}""",
    "contract-rejected": """{% extends "base.html" %}
{% block heading %}Contract declined{% endblock %}
{% block content %}
<p>Hi {{ recipient_name }},</p>
<p><strong>{{ candidate_name }}</strong> declined the contract offer for <strong>{{ job_title }}</strong>.</p>
{% if rejection_reason %}<p>Reason: {{ rejection_reason }}</p>{% endif %}
{% endblock %}""",
}

_TEXT = {
    "invite-sent": "{{ inviter_name }} invited you to join {{ company_name }} on {{ app_name }} as {{ role }}.\n{% if expires_at %}This invitation expires on {{ expires_at }}.\n{% endif %}{{ action_url }}",
    "invite-accepted": "{{ invitee_name }} accepted your invitation and joined {{ company_name }} as {{ role }}.\n{{ action_url }}",
    "invite-rejected": "{{ invitee_name }} declined your invitation to join {{ company_name }} as {{ role }}.",
    "job-permission-granted": "{{ granter_name }} granted you {{ permission_level }} access to {{ job_title }} at {{ company_name }}.\n{{ action_url }}",
    "interview-reminder": "Reminder: your interview for {{ job_title }} at {{ company_name }} is on {{ interview_date }} at {{ interview_time }} ({{ timezone }}), {{ duration }} minutes.\n{% if action_url %}Join: {{ action_url }}{% endif %}",
    "interview-cancellation": "Your interview for {{ job_title }} at {{ company_name }} on {{ interview_date }} at {{ interview_time }} ({{ timezone }}) has been cancelled.{% if reason %}\nReason: {{ reason }}{% endif %}",
    "interview-rescheduled": "Your interview for {{ job_title }} at {{ company_name }} has moved to {{ interview_date }} at {{ interview_time }} ({{ timezone }}), {{ duration }} minutes.\n{% if action_url %}Join: {{ action_url }}{% endif %}",
    "demo-request": "Demo request from {{ name }} <{{ email }}> at {{ company }}.{% if phone %}\nPhone: {{ phone }}{% endif %}{% if team_size %}\nTeam size: {{ team_size }}{% endif %}{% if message %}\n\n{{ message }}{% endif %}",
    "trial-ending": "Your {{ plan_id }} trial ends on {{ trial_end }}. Choose a plan: {{ action_url }}",
    "payment-failed": "We could not collect {{ amount }} {{ currency }} for invoice {{ invoice_id }}. Update your payment method: {{ action_url }}",
    "subscription-expiring": "Your {{ plan_id }} subscription ends on {{ period_end }}. Manage it here: {{ action_url }}",
    "past-due-final-notice": "Your subscription has been past due since {{ past_due_since }}. Update your payment method now: {{ action_url }}",
    "contract-signed": "{{ candidate_name }} signed the contract for {{ job_title }} on {{ signed_at }}.\n{{ action_url }}",
    "contract-rejected": "{{ candidate_name }} declined the contract offer for {{ job_title }}.{% if rejection_reason %}\nReason: {{ rejection_reason }}{% endif %}",
}

_SUBJECTS = {
    "invite-sent": "You're invited to join {{ company_name }} on {{ app_name }}",
    "invite-accepted": "{{ invitee_name }} joined {{ company_name }}",
    "invite-rejected": "{{ invitee_name }} declined your invitation",
    "job-permission-granted": "You've been granted access to \"{{ job_title }}\"",
    "interview-reminder": "Reminder: Interview for {{ job_title }} at {{ company_name }}",
    "interview-cancellation": "Interview Cancelled - {{ job_title }} at {{ company_name }}",
    "interview-rescheduled": "Interview Rescheduled - {{ job_title }} at {{ company_name }}",
    "demo-request": "Demo request from {{ company }}",
    "trial-ending": "Trial Ending Soon - Choose Your Plan",
    "payment-failed": "Payment Failed - Action Required",
    "subscription-expiring": "Your subscription ends on {{ period_end }}",
    "past-due-final-notice": "Final Notice - Payment Overdue",
    "contract-signed": "Contract Signed - {{ candidate_name }} - {{ job_title }}",
    "contract-rejected": "Contract Declined - {{ candidate_name }} - {{ job_title }}",
}

# Link label shown on the HTML call-to-action button
_ACTION_LABELS = {
    "invite-sent": "Accept Invitation",
    "invite-accepted": "View Team",
    "job-permission-granted": "Open Job",
    "interview-reminder": "Join Meeting",
    "interview-rescheduled": "Join Meeting",
    "trial-ending": "Choose a Plan",
    "payment-failed": "Update Payment Method",
    "subscription-expiring": "Manage Subscription",
    "past-due-final-notice": "Update Payment Method",
    "contract-signed": "View in Dashboard",
    "contract-rejected": "View in Dashboard",
}

NOTIFICATION_KINDS = frozenset(_SUBJECTS)

_html_env = Environment(
    loader=DictLoader({"base.html": _BASE_HTML, **{f"{kind}.html": src for kind, src in _HTML.items()}}),
    autoescape=select_autoescape(["html"]),
)
_text_env = Environment(autoescape=False)


def render(kind: str, data: Dict[str, Any], app_name: str = "Intavia") -> RenderedEmail:
    """Render one notification. Raises ValueError for an unknown kind."""
    if kind not in NOTIFICATION_KINDS:
        raise ValueError(f"Unknown notification kind: {kind}")

    context = {"app_name": app_name, "action_label": _ACTION_LABELS.get(kind, "Open"), "action_url": None}
    context.update(data)

    subject = _text_env.from_string(_SUBJECTS[kind]).render(**context).strip()
    html = _html_env.get_template(f"{kind}.html").render(title=subject, **context)
    text = _text_env.from_string(_TEXT[kind]).render(**context).strip()
    return RenderedEmail(subject=subject, html=html, text=text)
