"""Approval notification templates: template key -> subject/body (Jinja)."""

from __future__ import annotations

from typing import Any

from jinja2 import Environment, StrictUndefined, Template

# key -> (subject_template, body_template)
# Context: title, process_type, request_id, status, submitter_id, revision
_DEFAULT_TEMPLATES: dict[str, tuple[str, str]] = {
    "approval_requested": (
        "Approval required: {{ title }}",
        "A {{ process_type | replace('_', ' ') }} request ({{ request_id }}) is waiting for your approval.\n"
        "{% if revision > 1 %}This is resubmission {{ revision - 1 }} of the request.\n{% endif %}"
        "Current status: {{ status }}.",
    ),
    "request_approved": (
        "Approved: {{ title }}",
        "Your {{ process_type | replace('_', ' ') }} request ({{ request_id }}) has been approved at every level.",
    ),
    "request_rejected": (
        "Rejected: {{ title }}",
        "Your {{ process_type | replace('_', ' ') }} request ({{ request_id }}) was rejected.\n"
        "Open the request to see the approver's comments and resubmit if needed.",
    ),
}


class ApprovalTemplateRenderer:
    """Renders subject and body for an approval notification from a template key."""

    def __init__(
        self,
        templates: dict[str, tuple[str, str]] | None = None,
    ) -> None:
        """Initialize with optional template dict; falls back to _DEFAULT_TEMPLATES."""
        self._templates = templates or _DEFAULT_TEMPLATES
        self._env = Environment(autoescape=False, undefined=StrictUndefined)
        self._compiled: dict[str, tuple[Template, Template]] = {}
        for key, (sub_str, body_str) in self._templates.items():
            self._compiled[key] = (
                self._env.from_string(sub_str),
                self._env.from_string(body_str),
            )

    def render(self, template_key: str, context: dict[str, Any]) -> tuple[str, str]:
        """Render subject and body for the template key. Raises KeyError if key unknown."""
        if template_key not in self._compiled:
            raise KeyError(f"Unknown approval template: {template_key}")
        subject_tpl, body_tpl = self._compiled[template_key]
        return subject_tpl.render(**context), body_tpl.render(**context)
