"""Alert rules: form validation, row mapping, search and persistence."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from apps.console.models.alert_rule import AlertRule as AlertRuleRow
from apps.console.schemas.alert_rule import (
    AlertRule,
    AlertRuleForm,
    AlertRuleInput,
    AlertRuleMetadata,
)
from apps.console.services.listing import filter_by_term
from apps.console.services.setting_values import to_number

logger = logging.getLogger(__name__)

SEVERITY_LABELS = {"info": "Information", "warning": "Avertissement", "error": "Critique"}
TARGET_LABELS = {"subscription": "Abonnement", "tokens": "Jetons", "general": "Général"}
ROLE_LABELS = {
    "pro": "Abonnés Pro",
    "premium": "Utilisateurs premium / essai",
    "any": "Tous les utilisateurs",
}
STATUS_LABELS = {
    "active": "Comptes actifs",
    "inactive": "Comptes en attente",
    "expired": "Comptes expirés",
}
COMPARATOR_LABELS = {
    "<": "< (strictement inférieur)",
    "<=": "≤ (inférieur ou égal)",
    "=": "= (égal)",
    ">=": "≥ (supérieur ou égal)",
    ">": "> (strictement supérieur)",
}

THRESHOLD_ERROR = "Veuillez saisir une valeur numérique valide pour le seuil."
NAME_REQUIRED_ERROR = "Le nom de l'alerte est obligatoire."
MESSAGE_REQUIRED_ERROR = "Le message de l'alerte est obligatoire."
INVALID_RULE_ERROR = "Données de l'alerte invalides."

# general announcements target account statuses, not a measured quantity
NEUTRAL_COMPARATOR = "="
NEUTRAL_THRESHOLD = 0


class AlertRuleValidationError(ValueError):
    """Rejected before anything is sent to the backend."""


def delete_confirmation(rule: AlertRule) -> str:
    return f"Supprimer l'alerte « {rule.name} » ?"


def form_to_input(form: AlertRuleForm) -> AlertRuleInput:
    """Validate an admin draft. Checks run in the order the admin sees the errors."""
    if form.target == "general":
        comparator, threshold = NEUTRAL_COMPARATOR, NEUTRAL_THRESHOLD
        metadata = AlertRuleMetadata(status_filter=list(form.status_filter))
    else:
        threshold = to_number(form.threshold) if form.threshold.strip() else None
        if threshold is None:
            raise AlertRuleValidationError(THRESHOLD_ERROR)
        comparator = form.comparator
        metadata = AlertRuleMetadata()

    name = form.name.strip()
    if not name:
        raise AlertRuleValidationError(NAME_REQUIRED_ERROR)
    message = form.message_template.strip()
    if not message:
        raise AlertRuleValidationError(MESSAGE_REQUIRED_ERROR)

    return AlertRuleInput(
        name=name,
        description=form.description.strip() or None,
        trigger_type=form.trigger_type,
        target=form.target,
        comparator=comparator,
        threshold=threshold,
        severity=form.severity,
        message_template=message,
        applies_to_role=form.applies_to_role,
        is_blocking=form.is_blocking,
        is_active=form.is_active,
        metadata=metadata,
    )


def rule_to_form(rule: AlertRule) -> AlertRuleForm:
    return AlertRuleForm(
        name=rule.name,
        description=rule.description or "",
        trigger_type=rule.trigger_type,
        target=rule.target,
        comparator=rule.comparator,
        threshold=str(rule.threshold),
        severity=rule.severity,
        message_template=rule.message_template,
        applies_to_role=rule.applies_to_role,
        is_blocking=rule.is_blocking,
        is_active=rule.is_active,
        status_filter=list(rule.metadata.status_filter or []),
    )


def rule_to_input(rule: AlertRule, **changes: Any) -> AlertRuleInput:
    """Full payload for an update that keeps every field of ``rule`` except ``changes``."""
    data = {
        "name": rule.name,
        "description": rule.description,
        "trigger_type": rule.trigger_type,
        "target": rule.target,
        "comparator": rule.comparator,
        "threshold": rule.threshold,
        "severity": rule.severity,
        "message_template": rule.message_template,
        "applies_to_role": rule.applies_to_role,
        "is_blocking": rule.is_blocking,
        "is_active": rule.is_active,
        "metadata": rule.metadata.model_copy(deep=True),
    }
    data.update(changes)
    return AlertRuleInput(**data)


def coerce_alert_rule_input(data: AlertRuleInput | Mapping[str, Any]) -> AlertRuleInput:
    """Typed input from a payload, raising ``AlertRuleValidationError`` with the admin-facing message."""
    if isinstance(data, AlertRuleInput):
        rule = data
    else:
        try:
            rule = AlertRuleInput.model_validate(dict(data))
        except ValidationError as e:
            fields = {str(err["loc"][0]) for err in e.errors() if err.get("loc")}
            if fields & {"threshold"}:
                raise AlertRuleValidationError(THRESHOLD_ERROR) from e
            if fields & {"name"}:
                raise AlertRuleValidationError(NAME_REQUIRED_ERROR) from e
            if fields & {"messageTemplate", "message_template"}:
                raise AlertRuleValidationError(MESSAGE_REQUIRED_ERROR) from e
            raise AlertRuleValidationError(INVALID_RULE_ERROR) from e
    if not rule.name.strip():
        raise AlertRuleValidationError(NAME_REQUIRED_ERROR)
    if not rule.message_template.strip():
        raise AlertRuleValidationError(MESSAGE_REQUIRED_ERROR)
    return rule


def neutralize_general(values: dict[str, Any]) -> dict[str, Any]:
    """General announcements carry no measured condition."""
    if values.get("target") == "general":
        values["comparator"] = NEUTRAL_COMPARATOR
        values["threshold"] = NEUTRAL_THRESHOLD
    return values


def to_db_alert_rule(rule: AlertRuleInput) -> dict[str, Any]:
    metadata = rule.metadata.to_wire() if rule.metadata else {}
    return neutralize_general({
        "name": rule.name,
        "description": rule.description,
        "trigger_type": rule.trigger_type,
        "target": rule.target,
        "comparator": rule.comparator,
        "threshold": rule.threshold,
        "severity": rule.severity,
        "message_template": rule.message_template,
        "applies_to_role": rule.applies_to_role,
        "is_blocking": rule.is_blocking if rule.is_blocking is not None else False,
        "is_active": rule.is_active if rule.is_active is not None else True,
        "metadata": metadata,
    })


def map_alert_rule_row(row: Mapping[str, Any]) -> AlertRule:
    return AlertRule(
        id=str(row["id"]),
        name=row["name"],
        description=row.get("description"),
        trigger_type=row["trigger_type"],
        target=row["target"],
        comparator=row["comparator"],
        threshold=to_number(row.get("threshold")) or 0,
        severity=row["severity"],
        message_template=row["message_template"],
        applies_to_role=row.get("applies_to_role") or "any",
        is_blocking=bool(row.get("is_blocking")),
        is_active=bool(row.get("is_active", True)),
        metadata=AlertRuleMetadata.model_validate(row.get("metadata") or {}),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def search_fields(rule: AlertRule) -> list[str | None]:
    return [rule.name, rule.description, rule.message_template, SEVERITY_LABELS.get(rule.severity)]


def search_alert_rules(rules: Iterable[AlertRule], term: str | None) -> list[AlertRule]:
    """Rules matching ``term``, ordered by name as in the management table."""
    ordered = sorted(rules, key=lambda r: r.name.casefold())
    return filter_by_term(ordered, term, search_fields)


# --- persistence ----------------------------------------------------------


def alert_rule_row(obj: AlertRuleRow) -> dict[str, Any]:
    return {
        "id": obj.id,
        "name": obj.name,
        "description": obj.description,
        "trigger_type": obj.trigger_type,
        "target": obj.target,
        "comparator": obj.comparator,
        "threshold": obj.threshold,
        "severity": obj.severity,
        "message_template": obj.message_template,
        "applies_to_role": obj.applies_to_role,
        "is_blocking": bool(obj.is_blocking),
        "is_active": bool(obj.is_active),
        "metadata": obj.metadata_json or {},
        "created_at": obj.created_at.isoformat() if obj.created_at else None,
        "updated_at": obj.updated_at.isoformat() if obj.updated_at else None,
    }


def list_alert_rules(db: Session) -> list[AlertRuleRow]:
    q = select(AlertRuleRow).order_by(AlertRuleRow.target, AlertRuleRow.threshold, AlertRuleRow.name)
    return list(db.execute(q).scalars().all())


def _apply(obj: AlertRuleRow, values: Mapping[str, Any]) -> None:
    for key, value in values.items():
        setattr(obj, "metadata_json" if key == "metadata" else key, value)


def create_alert_rule(db: Session, values: Mapping[str, Any]) -> AlertRuleRow:
    obj = AlertRuleRow()
    _apply(obj, values)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info("alert_rule created id=%s target=%s", obj.id, obj.target)
    return obj


def update_alert_rule(db: Session, rule_id: str, values: Mapping[str, Any]) -> AlertRuleRow | None:
    obj = db.get(AlertRuleRow, rule_id)
    if not obj:
        return None
    _apply(obj, values)
    obj.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(obj)
    return obj


def delete_alert_rule(db: Session, rule_id: str) -> bool:
    obj = db.get(AlertRuleRow, rule_id)
    if not obj:
        return False
    db.delete(obj)
    db.commit()
    logger.info("alert_rule deleted id=%s", rule_id)
    return True
