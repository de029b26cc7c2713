"""Admin workflow for the email-template management table."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from apps.console.clients.backend import BackendError
from apps.console.clients.records import EmailTemplatesGateway
from apps.console.schemas.email_template import EmailTemplate, EmailTemplateForm
from apps.console.services.email_templates import (
    EmailTemplateValidationError,
    delete_confirmation,
    form_to_input,
    new_template_form,
    search_email_templates,
    template_to_input,
)
from apps.console.services.listing import DEFAULT_PAGE_SIZE, Page
from apps.console.workflows.table_state import TableState

logger = logging.getLogger(__name__)

LOAD_ERROR = "Impossible de charger les templates emails."
SAVE_ERROR = "Erreur lors de la sauvegarde du template"
DELETE_ERROR = "Impossible de supprimer ce template"
TOGGLE_ERROR = "Impossible de modifier le statut du template"


class EmailTemplatesConsole:
    def __init__(self, gateway: EmailTemplatesGateway, page_size: int = DEFAULT_PAGE_SIZE):
        self.gateway = gateway
        self.table: TableState[EmailTemplate] = TableState(search_email_templates, page_size)
        self.last_error: Optional[str] = None

    @property
    def templates(self) -> list[EmailTemplate]:
        return self.table.items

    def _fail(self, message: str, exc: Exception) -> None:
        logger.error("%s: %s", message, exc)
        self.last_error = message

    def new_form(self) -> EmailTemplateForm:
        return new_template_form()

    def load(self) -> bool:
        self.last_error = None
        try:
            self.table.replace(self.gateway.fetch())
        except BackendError as e:
            self._fail(LOAD_ERROR, e)
            return False
        return True

    def submit(self, form: EmailTemplateForm, editing_id: Optional[str] = None) -> Optional[EmailTemplate]:
        self.last_error = None
        try:
            payload = form_to_input(form)
        except EmailTemplateValidationError as e:
            self.last_error = str(e)
            return None
        try:
            if editing_id:
                saved = self.gateway.update(editing_id, payload)
                self.table.replace(saved if t.id == saved.id else t for t in self.templates)
            else:
                saved = self.gateway.create(payload)
                self.table.replace([saved] + self.templates)
        except BackendError as e:
            self._fail(e.message or SAVE_ERROR, e)
            return None
        return saved

    def toggle_active(self, template: EmailTemplate, value: bool) -> Optional[EmailTemplate]:
        self.last_error = None
        try:
            updated = self.gateway.update(template.id, template_to_input(template, is_active=value))
        except (BackendError, EmailTemplateValidationError) as e:
            self._fail(getattr(e, "message", None) or TOGGLE_ERROR, e)
            return None
        self.table.replace(updated if t.id == updated.id else t for t in self.templates)
        return updated

    def delete(self, template: EmailTemplate, confirm: Callable[[str], bool]) -> bool:
        if not confirm(delete_confirmation(template)):
            return False
        self.last_error = None
        try:
            self.gateway.delete(template.id)
        except BackendError as e:
            self._fail(e.message or DELETE_ERROR, e)
            return False
        self.table.replace(t for t in self.templates if t.id != template.id)
        return True

    def set_search(self, term: str) -> None:
        self.table.set_search(term)

    def set_page_size(self, size: int) -> None:
        self.table.set_page_size(size)

    def set_page(self, page: int) -> None:
        self.table.set_page(page)

    def visible_page(self) -> Page[EmailTemplate]:
        return self.table.visible_page()
