"""Translated user-facing messages.

Messages are looked up by key for the 2-letter language of a locale such as
``de_DE``. Unknown languages and missing keys fall back to English.
"""
from __future__ import annotations

from .config import settings

FALLBACK_LANGUAGE = "en"

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "SEARCH_PLACEHOLDER": "Search...",
        "ERROR_SEARCH_CONFIG": "Please set a search endpoint or a search callback for the field \"{name}\".",
        "ERROR_INVALID_CALLBACK": "The given search callback is not callable.",
        "ERROR_INVALID_PROVIDER": "The given search provider has no callable search method.",
        "SEARCH_FAILED": "The search failed, please try again.",
        "NO_RESULTS": "No results found.",
        "MIN_CHARS": "Please enter at least {count} characters.",
        "LOOKUP_FAILED": "The selected entry could not be loaded.",
    },
    "de": {
        "SEARCH_PLACEHOLDER": "Suchen...",
        "ERROR_SEARCH_CONFIG": "Bitte einen Such-Endpunkt oder eine Such-Funktion für das Feld \"{name}\" festlegen.",
        "ERROR_INVALID_CALLBACK": "Die übergebene Such-Funktion ist nicht aufrufbar.",
        "ERROR_INVALID_PROVIDER": "Der übergebene Such-Anbieter hat keine aufrufbare search-Methode.",
        "SEARCH_FAILED": "Die Suche ist fehlgeschlagen, bitte erneut versuchen.",
        "NO_RESULTS": "Keine Ergebnisse gefunden.",
        "MIN_CHARS": "Bitte mindestens {count} Zeichen eingeben.",
        "LOOKUP_FAILED": "Der ausgewählte Eintrag konnte nicht geladen werden.",
    },
}


def language_of(locale: str | None) -> str:
    """Return the lowercase 2-letter language of ``locale`` (``"de_DE"`` -> ``"de"``)."""
    if not locale:
        locale = settings.default_locale
    return locale[:2].lower()


def translate(key: str, locale: str | None = None, **params: object) -> str:
    language = language_of(locale)
    catalog = MESSAGES.get(language, MESSAGES[FALLBACK_LANGUAGE])
    template = catalog.get(key) or MESSAGES[FALLBACK_LANGUAGE].get(key, key)
    return template.format(**params) if params else template
