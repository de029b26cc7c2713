"""Admin workflow for the alert-rule management table."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from apps.console.clients.backend import BackendError
from apps.console.clients.records import AlertRulesGateway
from apps.console.schemas.alert_rule import AlertRule, AlertRuleForm
from apps.console.services.alert_rules import (
    AlertRuleValidationError,
    delete_confirmation,
    form_to_input,
    rule_to_input,
    search_alert_rules,
)
from apps.console.services.listing import DEFAULT_PAGE_SIZE, Page
from apps.console.workflows.table_state import TableState

logger = logging.getLogger(__name__)

LOAD_ERROR = "Impossible de charger les alertes."
REFRESH_ERROR = "Impossible de recharger les alertes"
SAVE_ERROR = "Erreur lors de la sauvegarde de l'alerte"
DELETE_ERROR = "Impossible de supprimer cette alerte"
TOGGLE_ERROR = "Impossible de modifier le statut de l'alerte"


class AlertRulesConsole:
    """Holds the rule list and applies admin actions to it.

    Every action reports failure through ``last_error`` (one message, no retry)
    and returns a falsy value; nothing is raised to the caller.
    """

    def __init__(self, gateway: AlertRulesGateway, page_size: int = DEFAULT_PAGE_SIZE):
        self.gateway = gateway
        self.table: TableState[AlertRule] = TableState(search_alert_rules, page_size)
        self.last_error: Optional[str] = None

    @property
    def rules(self) -> list[AlertRule]:
        return self.table.items

    def _fail(self, message: str, exc: Exception) -> None:
        logger.error("%s: %s", message, exc)
        self.last_error = message

    def load(self, *, refresh: bool = False) -> bool:
        self.last_error = None
        try:
            self.table.replace(self.gateway.fetch())
        except BackendError as e:
            self._fail(REFRESH_ERROR if refresh else LOAD_ERROR, e)
            return False
        return True

    def refresh(self) -> bool:
        return self.load(refresh=True)

    def submit(self, form: AlertRuleForm, editing_id: Optional[str] = None) -> Optional[AlertRule]:
        """Validate the draft, then create or update. The list is patched in place."""
        self.last_error = None
        try:
            payload = form_to_input(form)
        except AlertRuleValidationError as e:
            self.last_error = str(e)
            return None
        try:
            if editing_id:
                saved = self.gateway.update(editing_id, payload)
                self.table.replace(saved if r.id == saved.id else r for r in self.rules)
            else:
                saved = self.gateway.create(payload)
                self.table.replace([saved] + self.rules)
        except BackendError as e:
            self._fail(e.message or SAVE_ERROR, e)
            return None
        return saved

    def toggle_active(self, rule: AlertRule, value: bool) -> Optional[AlertRule]:
        """Full update re-sending every field with the new ``is_active``."""
        self.last_error = None
        try:
            updated = self.gateway.update(rule.id, rule_to_input(rule, is_active=value))
        except (BackendError, AlertRuleValidationError) as e:
            self._fail(getattr(e, "message", None) or TOGGLE_ERROR, e)
            return None
        self.table.replace(updated if r.id == updated.id else r for r in self.rules)
        return updated

    def delete(self, rule: AlertRule, confirm: Callable[[str], bool]) -> bool:
        if not confirm(delete_confirmation(rule)):
            return False
        self.last_error = None
        try:
            self.gateway.delete(rule.id)
        except BackendError as e:
            self._fail(e.message or DELETE_ERROR, e)
            return False
        self.table.replace(r for r in self.rules if r.id != rule.id)
        return True

    def set_search(self, term: str) -> None:
        self.table.set_search(term)

    def set_page_size(self, size: int) -> None:
        self.table.set_page_size(size)

    def set_page(self, page: int) -> None:
        self.table.set_page(page)

    def visible_page(self) -> Page[AlertRule]:
        return self.table.visible_page()
