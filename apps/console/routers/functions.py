"""Function-style RPC endpoints (/functions/v1/*) consumed by the console."""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apps.console.auth import decode_token
from apps.console.deps import get_db
from apps.console.services.settings_store import (
    get_admin_settings,
    get_public_llm_settings,
    get_public_pricing,
    update_admin_settings,
)
from apps.console.services.support import SupportRequestError, submit_support_request
from apps.console.utils.api_errors import (
    ACCESS_DENIED,
    INVALID_BODY,
    METHOD_NOT_ALLOWED,
    NOT_AUTHENTICATED,
    function_error,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SAVE_ERROR = "Erreur lors de la sauvegarde des paramètres"
READ_SETTINGS_ERROR = "Erreur lors du chargement des paramètres"
READ_PRICING_ERROR = "Erreur lecture paramètres tarifaires"
READ_LLM_ERROR = "Lecture paramètres LLM impossible"
SUPPORT_STORE_ERROR = "Erreur lors de l'enregistrement du message."


def _admin_error(request: Request):
    """None for an admin Bearer, otherwise the 401/403 function response."""
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return function_error(NOT_AUTHENTICATED, 401)
    payload = decode_token(token)
    if not payload or "sub" not in payload:
        return function_error(NOT_AUTHENTICATED, 401)
    if payload.get("role", "admin") != "admin":
        return function_error(ACCESS_DENIED, 403)
    return None


async def _json_body(request: Request):
    try:
        return await request.json()
    except ValueError:
        return None


@router.api_route("/admin-get-settings", methods=["GET", "POST"])
def admin_get_settings(request: Request, db: Session = Depends(get_db)):
    denied = _admin_error(request)
    if denied:
        return denied
    try:
        return get_admin_settings(db)
    except SQLAlchemyError:
        logger.exception("admin-get-settings failed")
        return function_error(READ_SETTINGS_ERROR, 500)


@router.api_route("/admin-update-settings", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def admin_update_settings(request: Request, db: Session = Depends(get_db)):
    if request.method != "POST":
        return function_error(METHOD_NOT_ALLOWED, 405)
    denied = _admin_error(request)
    if denied:
        return denied
    payload = await _json_body(request)
    if not isinstance(payload, dict):
        return function_error(INVALID_BODY, 400)
    try:
        update_admin_settings(db, payload)
    except ValueError as e:
        return function_error(str(e), 400)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("admin-update-settings failed")
        return function_error(SAVE_ERROR, 500)
    return {"success": True}


@router.api_route("/public-get-pricing", methods=["GET", "POST"])
def public_get_pricing(db: Session = Depends(get_db)):
    try:
        return get_public_pricing(db)
    except SQLAlchemyError:
        logger.exception("public-get-pricing failed")
        return function_error(READ_PRICING_ERROR, 500)


@router.api_route("/public-get-llm-settings", methods=["GET", "POST"])
def public_get_llm_settings(db: Session = Depends(get_db)):
    try:
        return get_public_llm_settings(db)
    except SQLAlchemyError:
        logger.exception("public-get-llm-settings failed")
        return function_error(READ_LLM_ERROR, 500)


@router.api_route("/support-contact", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def support_contact(request: Request, db: Session = Depends(get_db)):
    if request.method != "POST":
        return function_error(METHOD_NOT_ALLOWED, 405)
    payload = await _json_body(request)
    if not isinstance(payload, dict):
        return function_error(INVALID_BODY, 400)
    try:
        submit_support_request(db, payload)
    except SupportRequestError as e:
        return function_error(str(e), 400)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("support-contact storage failed")
        return function_error(SUPPORT_STORE_ERROR, 500)
    return {"success": True}
