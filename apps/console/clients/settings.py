"""Platform settings loads and saves through the backend.

Section loads never fail: when the backend is unreachable the caller gets defaults
(and the failure is logged). Saves raise ``SettingsSaveError`` with a message
that can be shown to the admin as-is. ``fetch_llm_settings`` is the strict
variant used before a read-modify-write of the LLM settings.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from pydantic import ValidationError

from apps.console.clients.backend import BackendClient, BackendError
from apps.console.schemas.settings import (
    LLMSettings,
    PaymentSettings,
    PricingSettings,
    PublicLLMSettings,
    SiteSettings,
)
from apps.console.services.settings_codec import (
    DEFAULT_PAYMENT_SETTINGS,
    DEFAULT_PRICING_SETTINGS,
    DEFAULT_SITE_SETTINGS,
    PAYMENT_KEY,
    PRICING_KEYS,
    decode_llm_settings,
    decode_payment_settings,
    decode_pricing_settings,
    encode_pricing_settings,
    pricing_from_wire,
    sanitize_payment_payload,
)

logger = logging.getLogger(__name__)

SITE_SAVE_ERROR = "Erreur lors de la sauvegarde des paramètres"
PRICING_SAVE_ERROR = "Erreur lors de la sauvegarde des paramètres tarifaires"
LLM_SAVE_ERROR = "Erreur lors de la sauvegarde des paramètres LLM"
PAYMENT_SAVE_ERROR = "Erreur lors de la sauvegarde des paramètres de paiement"
LLM_LOAD_ERROR = "Impossible de charger les paramètres LLM"


class SettingsSaveError(Exception):
    """A settings section could not be saved."""


class RequestCache:
    """Memoizes one backend response; concurrent callers share a single request.

    Failed loads are not cached. ``invalidate()`` forgets the stored response.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Optional[dict] = None

    def get(self, loader: Callable[[], Optional[dict]]) -> Optional[dict]:
        with self._lock:
            if self._value is None:
                self._value = loader()
            return self._value

    def invalidate(self) -> None:
        with self._lock:
            self._value = None

    @property
    def is_cached(self) -> bool:
        return self._value is not None


class SettingsGateway:
    def __init__(self, backend: BackendClient, cache: Optional[RequestCache] = None):
        self.backend = backend
        self.cache = cache or RequestCache()

    # --- admin aggregation ------------------------------------------------

    def _fetch_admin_settings(self) -> Optional[dict]:
        try:
            return self.backend.invoke("admin-get-settings")
        except BackendError as e:
            logger.error("Erreur chargement paramètres administrateur: %s", e.message)
            return None

    def admin_settings(self) -> Optional[dict]:
        return self.cache.get(self._fetch_admin_settings)

    def _admin_section(self, name: str) -> Any:
        response = self.admin_settings()
        return response.get(name) if response else None

    # --- loads ------------------------------------------------------------

    def load_site_settings(self) -> SiteSettings:
        raw = self._admin_section("settings")
        if isinstance(raw, dict):
            try:
                return SiteSettings.model_validate(raw)
            except ValidationError:
                logger.warning("Malformed site settings from backend, using defaults")
        return DEFAULT_SITE_SETTINGS.model_copy()

    def load_payment_settings(self) -> PaymentSettings:
        raw = self._admin_section("payment")
        if isinstance(raw, dict):
            return decode_payment_settings([{"key": PAYMENT_KEY, "value": raw}])
        return DEFAULT_PAYMENT_SETTINGS.model_copy(deep=True)

    def load_llm_settings(self) -> LLMSettings:
        return decode_llm_settings(self._admin_section("llm"))

    def fetch_llm_settings(self) -> LLMSettings:
        """Stored LLM settings; raises ``BackendError`` instead of falling back to defaults."""
        response = self.admin_settings()
        if response is None:
            raise BackendError(LLM_LOAD_ERROR)
        return decode_llm_settings(response.get("llm"))

    def _pricing_from_function(self) -> Optional[PricingSettings]:
        try:
            data = self.backend.invoke("public-get-pricing")
        except BackendError as e:
            logger.warning("Invocation public-get-pricing échouée, tentative directe: %s", e.message)
            return None
        raw = data.get("pricing")
        if not isinstance(raw, dict):
            return None
        try:
            return pricing_from_wire(raw)
        except ValidationError:
            logger.warning("Malformed pricing from public-get-pricing")
            return None

    def _pricing_rows(self) -> list[dict]:
        return self.backend.select("system_settings", params={"keys": ",".join(PRICING_KEYS)})

    def load_pricing_settings(self) -> PricingSettings:
        """public-get-pricing, then the table itself, then the admin aggregation, then defaults."""
        pricing = self._pricing_from_function()
        if pricing:
            return pricing
        try:
            return decode_pricing_settings(self._pricing_rows())
        except BackendError as e:
            logger.warning("Lecture directe des tarifs impossible, tentative via admin-get-settings: %s", e.message)
        raw = self._admin_section("pricing")
        if isinstance(raw, dict):
            try:
                return pricing_from_wire(raw)
            except ValidationError:
                logger.warning("Malformed pricing from admin-get-settings")
        return DEFAULT_PRICING_SETTINGS.model_copy(deep=True)

    def fetch_public_pricing_settings(self) -> PricingSettings:
        pricing = self._pricing_from_function()
        if pricing:
            return pricing
        try:
            rows = self._pricing_rows()
        except BackendError as e:
            logger.warning("Impossible de charger les paramètres tarifaires, valeurs par défaut: %s", e.message)
            return DEFAULT_PRICING_SETTINGS.model_copy(deep=True)
        return decode_pricing_settings(rows)

    def fetch_public_llm_settings(self) -> Optional[PublicLLMSettings]:
        try:
            data = self.backend.invoke("public-get-llm-settings")
        except BackendError as e:
            logger.error("Erreur lors du chargement public des paramètres LLM: %s", e.message)
            return None
        try:
            return PublicLLMSettings.model_validate(data.get("settings") or {})
        except ValidationError:
            logger.warning("Malformed public LLM settings")
            return None

    def fetch_public_payment_settings(self) -> PaymentSettings:
        """Raises ``BackendError`` when the table cannot be read."""
        rows = self.backend.select("system_settings", params={"keys": PAYMENT_KEY})
        return decode_payment_settings(rows)

    # --- saves ------------------------------------------------------------

    def _update(self, body: dict, fallback_message: str) -> bool:
        try:
            self.backend.invoke("admin-update-settings", body)
        except BackendError as e:
            logger.error("admin-update-settings failed sections=%s error=%s", list(body), e.message)
            raise SettingsSaveError(e.message or fallback_message) from e
        self.cache.invalidate()
        return True

    def save_site_settings(self, settings: SiteSettings) -> bool:
        return self._update({"settings": settings.to_wire()}, SITE_SAVE_ERROR)

    def save_llm_settings(self, settings: LLMSettings) -> bool:
        llm = decode_llm_settings(settings)
        return self._update({"llm": llm.model_dump(by_alias=True, mode="json")}, LLM_SAVE_ERROR)

    def save_payment_settings(self, payment: PaymentSettings) -> bool:
        sanitized = sanitize_payment_payload(payment)
        if sanitized is None:
            raise SettingsSaveError(PAYMENT_SAVE_ERROR)
        return self._update({"payment": sanitized.to_wire()}, PAYMENT_SAVE_ERROR)

    def save_pricing_settings(self, pricing: PricingSettings) -> bool:
        """Direct upsert on system_settings; admin-update-settings when that is refused."""
        try:
            self.backend.upsert("system_settings", encode_pricing_settings(pricing))
        except BackendError as e:
            logger.warning("Upsert direct des paramètres tarifaires impossible, tentative via fonction: %s", e.message)
            return self._update({"pricing": pricing.to_wire()}, PRICING_SAVE_ERROR)
        self.cache.invalidate()
        return True
