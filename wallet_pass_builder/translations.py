"""
Translation registry for localized pass strings.

Labels and values that need localizing are replaced in pass.json by an opaque
token; each token resolves to one line per locale in that locale's
``<locale>.lproj/pass.strings`` file.
"""

import logging
import re
import uuid
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional, Tuple, Union

from .exceptions import STAGE_DOCUMENT, ValidationError
from .models import SupportedLocale

logger = logging.getLogger(__name__)

MAX_TOKEN_ATTEMPTS = 16

# Language, optional script/region subtags; the locale becomes a directory name
_LOCALE_PATTERN = re.compile(r"[A-Za-z]{2,3}(?:[-_][A-Za-z0-9]{2,8})*")

LocaleLabels = Mapping[Union[SupportedLocale, str], str]


def _default_token() -> str:
    return str(uuid.uuid4())


def escape_strings_value(text: str) -> str:
    """Escape a value for a double-quoted .strings literal"""
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def format_strings_line(token: str, text: str) -> str:
    return f'"{escape_strings_value(token)}" = "{escape_strings_value(text)}";'


def normalize_locale(locale: Union[SupportedLocale, str]) -> str:
    if isinstance(locale, SupportedLocale):
        return locale.value
    if not isinstance(locale, str) or not _LOCALE_PATTERN.fullmatch(locale):
        raise ValidationError(f"Invalid locale {locale!r}", stage=STAGE_DOCUMENT)
    return locale


class TranslationRegistry:
    """Maps issued tokens to per-locale strings for one build session.

    Not safe for concurrent mutation; a registry belongs to a single
    PassBuilder.
    """

    def __init__(self, token_factory: Optional[Callable[[], str]] = None):
        self._token_factory = token_factory or _default_token
        self._translations: Dict[str, Mapping[str, str]] = {}

    def __len__(self) -> int:
        return len(self._translations)

    def __contains__(self, token: str) -> bool:
        return token in self._translations

    def create(self, labels: LocaleLabels) -> str:
        """Register labels and return a token never issued before in this session"""
        if not labels:
            raise ValidationError("A translation needs at least one locale")

        normalized = {}
        for locale, text in labels.items():
            if not isinstance(text, str):
                raise ValidationError(f"Translation for '{locale}' must be a string")
            normalized[normalize_locale(locale)] = text

        for _ in range(MAX_TOKEN_ATTEMPTS):
            token = self._token_factory()
            if token and token not in self._translations:
                self._translations[token] = MappingProxyType(normalized)
                return token
            logger.debug(f"Translation token collision on {token!r}, regenerating")

        raise ValidationError(f"Could not generate a unique translation token after {MAX_TOKEN_ATTEMPTS} attempts")

    def get(self, token: str) -> Optional[Mapping[str, str]]:
        return self._translations.get(token)

    def locales(self) -> Tuple[str, ...]:
        seen = {}
        for labels in self._translations.values():
            for locale in labels:
                seen.setdefault(locale, None)
        return tuple(seen)

    def tables(self) -> Dict[str, Tuple[str, ...]]:
        """Expand the registry into one ordered string table per locale"""
        tables: Dict[str, list] = {}
        for token, labels in self._translations.items():
            for locale, text in labels.items():
                tables.setdefault(locale, []).append(format_strings_line(token, text))
        return {locale: tuple(lines) for locale, lines in tables.items()}
