"""Gateways over backend tables and functions: alert rules, email templates, support, assistant."""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from apps.console.clients.backend import BackendClient, BackendError
from apps.console.schemas.alert_rule import AlertRule, AlertRuleInput
from apps.console.schemas.email_template import EmailTemplate, EmailTemplateInput
from apps.console.services.alert_rules import (
    coerce_alert_rule_input,
    map_alert_rule_row,
    to_db_alert_rule,
)
from apps.console.services.email_templates import (
    check_template_input,
    map_email_template_row,
    to_db_email_template,
)
from apps.console.services.support import SupportRequestError, validate_support_request

logger = logging.getLogger(__name__)

RULE_CREATE_EMPTY = "Aucune donnée retournée lors de la création de la règle"
RULE_UPDATE_MISSING = "Règle introuvable lors de la mise à jour"
TEMPLATE_CREATE_EMPTY = "Aucune donnée retournée lors de la création du template email"
TEMPLATE_UPDATE_MISSING = "Template email introuvable lors de la mise à jour"
ASSISTANT_CALL_ERROR = "Erreur lors de l'appel de l'assistant IA"


class AlertRulesGateway:
    table = "alert_rules"

    def __init__(self, backend: BackendClient):
        self.backend = backend

    def fetch(self) -> list[AlertRule]:
        """Rules in the backend's order: target, threshold, name."""
        return [map_alert_rule_row(row) for row in self.backend.select(self.table)]

    def create(self, rule: AlertRuleInput) -> AlertRule:
        row = self.backend.insert(self.table, to_db_alert_rule(coerce_alert_rule_input(rule)))
        if not row:
            raise BackendError(RULE_CREATE_EMPTY)
        return map_alert_rule_row(row)

    def update(self, rule_id: str, rule: AlertRuleInput) -> AlertRule:
        try:
            row = self.backend.update(self.table, rule_id, to_db_alert_rule(coerce_alert_rule_input(rule)))
        except BackendError as e:
            if e.status_code == 404:
                raise BackendError(RULE_UPDATE_MISSING, 404) from e
            raise
        if not row:
            raise BackendError(RULE_UPDATE_MISSING, 404)
        return map_alert_rule_row(row)

    def delete(self, rule_id: str) -> None:
        self.backend.delete(self.table, rule_id)


class EmailTemplatesGateway:
    table = "email_templates"

    def __init__(self, backend: BackendClient):
        self.backend = backend

    def fetch(self) -> list[EmailTemplate]:
        return [map_email_template_row(row) for row in self.backend.select(self.table)]

    def create(self, template: EmailTemplateInput) -> EmailTemplate:
        row = self.backend.insert(self.table, to_db_email_template(check_template_input(template)))
        if not row:
            raise BackendError(TEMPLATE_CREATE_EMPTY)
        return map_email_template_row(row)

    def update(self, template_id: str, template: EmailTemplateInput) -> EmailTemplate:
        try:
            row = self.backend.update(self.table, template_id, to_db_email_template(check_template_input(template)))
        except BackendError as e:
            if e.status_code == 404:
                raise BackendError(TEMPLATE_UPDATE_MISSING, 404) from e
            raise
        if not row:
            raise BackendError(TEMPLATE_UPDATE_MISSING, 404)
        return map_email_template_row(row)

    def delete(self, template_id: str) -> None:
        self.backend.delete(self.table, template_id)


class SupportGateway:
    def __init__(self, backend: BackendClient):
        self.backend = backend

    def send(
        self,
        email: str,
        subject: str,
        message: str,
        cc: Optional[Iterable[str]] = None,
        bcc: Optional[Iterable[str]] = None,
    ) -> bool:
        payload = {"email": email, "subject": subject, "message": message}
        if cc:
            payload["cc"] = list(cc)
        if bcc:
            payload["bcc"] = list(bcc)
        error = validate_support_request(payload)
        if error:
            raise SupportRequestError(error)
        self.backend.invoke("support-contact", payload)
        return True


class AssistantGateway:
    """Calls the ``call-ai-assistant`` function."""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    def invoke_assistant(self, assistant_id: str, message: str, language: Optional[str] = None) -> str:
        payload = {"assistantId": assistant_id, "message": message.strip()}
        if language:
            payload["language"] = language
        data = self.backend.invoke("call-ai-assistant", payload)
        reply = data.get("message")
        if not isinstance(reply, str):
            raise BackendError(ASSISTANT_CALL_ERROR)
        return reply
