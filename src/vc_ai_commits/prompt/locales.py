"""
English display names for locale identifiers.

Only the language part of an identifier is used, so ``de``, ``de_DE``,
``de-AT`` and ``de_DE.UTF-8`` all render as ``German``.
"""

from __future__ import annotations

import re

LANGUAGE_NAMES = {
    "ar": "Arabic",
    "bg": "Bulgarian",
    "ca": "Catalan",
    "cs": "Czech",
    "da": "Danish",
    "de": "German",
    "el": "Greek",
    "en": "English",
    "es": "Spanish",
    "et": "Estonian",
    "fa": "Persian",
    "fi": "Finnish",
    "fr": "French",
    "he": "Hebrew",
    "hi": "Hindi",
    "hr": "Croatian",
    "hu": "Hungarian",
    "id": "Indonesian",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "lt": "Lithuanian",
    "lv": "Latvian",
    "nb": "Norwegian Bokmål",
    "nl": "Dutch",
    "no": "Norwegian",
    "pl": "Polish",
    "pt": "Portuguese",
    "ro": "Romanian",
    "ru": "Russian",
    "sk": "Slovak",
    "sl": "Slovenian",
    "sr": "Serbian",
    "sv": "Swedish",
    "th": "Thai",
    "tr": "Turkish",
    "uk": "Ukrainian",
    "vi": "Vietnamese",
    "zh": "Chinese",
}


def language_code(locale_id: str) -> str:
    """Return the lower-cased language part of ``locale_id``."""
    return re.split(r"[_\-.@]", locale_id.strip(), maxsplit=1)[0].lower()


def display_language(locale_id: str) -> str:
    """Return the English name of the language of ``locale_id``.

    Unknown languages fall back to their code.
    """
    code = language_code(locale_id)
    return LANGUAGE_NAMES.get(code, code)
