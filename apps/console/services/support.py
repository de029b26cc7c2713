"""Обращения в поддержку: проверка, сохранение и пересылка на webhook."""
from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping, Optional

import httpx
from sqlalchemy.orm import Session

from apps.console.config import get_settings
from apps.console.models.support_message import SupportMessage

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

SUBJECT_MIN_LENGTH = 3
MESSAGE_MIN_LENGTH = 10
MESSAGE_MAX_LENGTH = 5000

ALL_FIELDS_REQUIRED_ERROR = "Tous les champs sont requis."
INVALID_EMAIL_ERROR = "Adresse email invalide."
SUBJECT_TOO_SHORT_ERROR = "Le sujet doit contenir au moins 3 caractères."
MESSAGE_TOO_SHORT_ERROR = "Le message doit contenir au moins 10 caractères."
MESSAGE_TOO_LONG_ERROR = "Le message est trop long (5000 caractères max)."


class SupportRequestError(ValueError):
    """A support request rejected before it is stored."""


def is_valid_email(address: Any) -> bool:
    return isinstance(address, str) and bool(EMAIL_RE.search(address))


def _address_list(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [a.strip() for a in raw if isinstance(a, str) and a.strip()]


def validate_support_request(payload: Mapping[str, Any]) -> Optional[str]:
    """First problem found in the request, or None."""
    email = payload.get("email")
    subject = payload.get("subject")
    message = payload.get("message")
    if not email or not subject or not message:
        return ALL_FIELDS_REQUIRED_ERROR
    if not isinstance(email, str) or not isinstance(subject, str) or not isinstance(message, str):
        return ALL_FIELDS_REQUIRED_ERROR
    if not is_valid_email(email):
        return INVALID_EMAIL_ERROR
    if len(subject.strip()) < SUBJECT_MIN_LENGTH:
        return SUBJECT_TOO_SHORT_ERROR
    text = message.strip()
    if len(text) < MESSAGE_MIN_LENGTH:
        return MESSAGE_TOO_SHORT_ERROR
    if len(text) > MESSAGE_MAX_LENGTH:
        return MESSAGE_TOO_LONG_ERROR
    for label in ("cc", "bcc"):
        addresses = payload.get(label)
        if not isinstance(addresses, list):
            continue
        for address in addresses:
            if not is_valid_email(address):
                return f"Adresse {label.upper()} invalide : {address}"
    return None


def compose_stored_message(message: str, cc: Iterable[str], bcc: Iterable[str]) -> str:
    cc, bcc = list(cc), list(bcc)
    parts = [
        message.strip(),
        f"CC: {', '.join(cc)}" if cc else "",
        f"BCC: {', '.join(bcc)}" if bcc else "",
    ]
    return "\n\n".join(p for p in parts if p)


def forward_support_message(webhook: str, payload: dict) -> tuple[bool, str | None]:
    try:
        r = httpx.post(webhook, json=payload, timeout=15)
        if r.status_code >= 400:
            return False, f"http_{r.status_code}"
        return True, None
    except httpx.HTTPError as e:
        return False, str(e)[:200]


def submit_support_request(db: Session, payload: Mapping[str, Any]) -> SupportMessage:
    error = validate_support_request(payload)
    if error:
        raise SupportRequestError(error)

    stored = compose_stored_message(
        payload["message"],
        _address_list(payload.get("cc")),
        _address_list(payload.get("bcc")),
    )
    msg = SupportMessage(
        user_email=payload["email"].strip(),
        subject=payload["subject"].strip(),
        message=stored,
    )
    db.add(msg)
    db.commit()
    db.refresh(msg)
    logger.info("support message stored id=%s", msg.id)

    s = get_settings()
    if s.support_forwarding_webhook:
        ok, err = forward_support_message(
            s.support_forwarding_webhook,
            {
                "to": s.support_inbox_email,
                "from": msg.user_email,
                "subject": msg.subject,
                "message": stored,
            },
        )
        if not ok:
            logger.error("support forward failed id=%s error=%s", msg.id, err)
    return msg
