"""Шаблоны писем: проверка черновиков, маппинг строк, поиск и хранение."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from apps.console.config import get_settings
from apps.console.models.email_template import EmailTemplate as EmailTemplateRow
from apps.console.schemas.email_template import EmailTemplate, EmailTemplateForm, EmailTemplateInput
from apps.console.services.listing import filter_by_term

logger = logging.getLogger(__name__)

RECIPIENT_LABELS = {
    "user": "Utilisateur",
    "admin": "Administrateur",
    "both": "Utilisateur + Administrateur",
}

REQUIRED_FIELDS_ERROR = "Nom, objet et contenu sont obligatoires."


class EmailTemplateValidationError(ValueError):
    """Rejected before anything is sent to the backend."""


def default_signature() -> str:
    return get_settings().email_default_signature


def delete_confirmation(template: EmailTemplate) -> str:
    return f"Supprimer le template « {template.name} » ?"


def split_addresses(text: str | None) -> list[str]:
    """``"a@x.com, b@x.com ,, c@x.com"`` -> ``["a@x.com", "b@x.com", "c@x.com"]``."""
    return [part.strip() for part in (text or "").split(",") if part.strip()]


def form_to_input(form: EmailTemplateForm) -> EmailTemplateInput:
    if not form.name.strip() or not form.subject.strip() or not form.body.strip():
        raise EmailTemplateValidationError(REQUIRED_FIELDS_ERROR)
    return EmailTemplateInput(
        name=form.name.strip(),
        subject=form.subject.strip(),
        recipients=form.recipients,
        cc=split_addresses(form.cc),
        bcc=split_addresses(form.bcc),
        body=form.body,
        signature=form.signature if form.signature.strip() else default_signature(),
        is_active=form.is_active,
        metadata={},
    )


def new_template_form() -> EmailTemplateForm:
    return EmailTemplateForm(signature=default_signature())


def template_to_form(template: EmailTemplate) -> EmailTemplateForm:
    return EmailTemplateForm(
        name=template.name,
        subject=template.subject,
        recipients=template.recipients,
        cc=", ".join(template.cc),
        bcc=", ".join(template.bcc),
        body=template.body,
        signature=template.signature or "",
        is_active=template.is_active,
    )


def template_to_input(template: EmailTemplate, **changes: Any) -> EmailTemplateInput:
    data = {
        "name": template.name,
        "subject": template.subject,
        "recipients": template.recipients,
        "cc": list(template.cc),
        "bcc": list(template.bcc),
        "body": template.body,
        "signature": template.signature,
        "is_active": template.is_active,
        "metadata": dict(template.metadata),
    }
    data.update(changes)
    return EmailTemplateInput(**data)


def check_template_input(template: EmailTemplateInput) -> EmailTemplateInput:
    if not template.name.strip() or not template.subject.strip() or not template.body.strip():
        raise EmailTemplateValidationError(REQUIRED_FIELDS_ERROR)
    return template


def to_db_email_template(template: EmailTemplateInput) -> dict[str, Any]:
    return {
        "name": template.name,
        "subject": template.subject,
        "recipients": template.recipients,
        "cc": list(template.cc),
        "bcc": list(template.bcc),
        "body": template.body,
        "signature": template.signature,
        "is_active": template.is_active,
        "metadata": dict(template.metadata),
    }


def map_email_template_row(row: Mapping[str, Any]) -> EmailTemplate:
    cc = row.get("cc")
    bcc = row.get("bcc")
    return EmailTemplate(
        id=str(row["id"]),
        name=row["name"],
        subject=row["subject"],
        recipients=row.get("recipients") or "user",
        cc=[str(a) for a in cc] if isinstance(cc, list) else [],
        bcc=[str(a) for a in bcc] if isinstance(bcc, list) else [],
        body=row["body"],
        signature=row.get("signature"),
        is_active=bool(row.get("is_active")),
        metadata=row.get("metadata") or {},
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def search_fields(template: EmailTemplate) -> list[str | None]:
    return [
        template.name,
        template.subject,
        RECIPIENT_LABELS.get(template.recipients),
        ", ".join(template.cc),
        ", ".join(template.bcc),
    ]


def search_email_templates(templates: Iterable[EmailTemplate], term: str | None) -> list[EmailTemplate]:
    ordered = sorted(templates, key=lambda t: t.name.casefold())
    return filter_by_term(ordered, term, search_fields)


# --- persistence ----------------------------------------------------------


def email_template_row(obj: EmailTemplateRow) -> dict[str, Any]:
    return {
        "id": obj.id,
        "name": obj.name,
        "subject": obj.subject,
        "recipients": obj.recipients,
        "cc": list(obj.cc or []),
        "bcc": list(obj.bcc or []),
        "body": obj.body,
        "signature": obj.signature,
        "is_active": bool(obj.is_active),
        "metadata": obj.metadata_json or {},
        "created_at": obj.created_at.isoformat() if obj.created_at else None,
        "updated_at": obj.updated_at.isoformat() if obj.updated_at else None,
    }


def list_email_templates(db: Session) -> list[EmailTemplateRow]:
    return list(db.execute(select(EmailTemplateRow).order_by(EmailTemplateRow.name)).scalars().all())


def _apply(obj: EmailTemplateRow, values: Mapping[str, Any]) -> None:
    for key, value in values.items():
        setattr(obj, "metadata_json" if key == "metadata" else key, value)


def create_email_template(db: Session, values: Mapping[str, Any]) -> EmailTemplateRow:
    obj = EmailTemplateRow()
    _apply(obj, values)
    if not obj.signature:
        obj.signature = default_signature()
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info("email_template created id=%s", obj.id)
    return obj


def update_email_template(db: Session, template_id: str, values: Mapping[str, Any]) -> EmailTemplateRow | None:
    obj = db.get(EmailTemplateRow, template_id)
    if not obj:
        return None
    _apply(obj, values)
    obj.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(obj)
    return obj


def delete_email_template(db: Session, template_id: str) -> bool:
    obj = db.get(EmailTemplateRow, template_id)
    if not obj:
        return False
    db.delete(obj)
    db.commit()
    logger.info("email_template deleted id=%s", template_id)
    return True
