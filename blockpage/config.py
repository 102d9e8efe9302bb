"""
Configuration — variables d'environnement.

DB_PATH               chemin SQLite (défaut : data/blockpage.db)
DEFAULT_LOCALE        locale par défaut du contenu (défaut : en)
LOCALES               locales disponibles, séparées par des virgules
LOCALE_FALLBACKS      JSON {"de-AT": "de"} — fallbacks régionaux déclarés
PREFETCH_CONCURRENCY  enrichissements simultanés max par rendu
PREFETCH_TIMEOUT      timeout (s) d'un enrichissement
"""
import json
import logging
import os
from pathlib import Path

log = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent.parent / "data"

DB_PATH        = os.getenv("DB_PATH", str(DATA_DIR / "blockpage.db"))
DEFAULT_LOCALE = os.getenv("DEFAULT_LOCALE", "en")
LOCALES        = [l.strip() for l in os.getenv("LOCALES", "en,sk,de,de-AT").split(",") if l.strip()]

PREFETCH_CONCURRENCY = int(os.getenv("PREFETCH_CONCURRENCY", "8"))
PREFETCH_TIMEOUT     = float(os.getenv("PREFETCH_TIMEOUT", "5"))


def _load_fallbacks(raw: str) -> dict:
    try:
        data = json.loads(raw or "{}")
    except json.JSONDecodeError as e:
        log.warning("LOCALE_FALLBACKS invalide (%s) — ignoré", e)
        return {}
    if not isinstance(data, dict):
        log.warning("LOCALE_FALLBACKS doit être un objet JSON — ignoré")
        return {}
    return {str(k): str(v) for k, v in data.items()}


LOCALE_FALLBACKS = _load_fallbacks(os.getenv("LOCALE_FALLBACKS", ""))


def locale_config():
    """LocaleConfig construite depuis l'environnement."""
    from .i18n import LocaleConfig
    return LocaleConfig(
        default_locale=DEFAULT_LOCALE,
        locales=LOCALES,
        fallbacks=LOCALE_FALLBACKS,
    )
