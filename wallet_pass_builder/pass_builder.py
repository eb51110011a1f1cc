"""
Apple Wallet pass document builder.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import jsonschema

from .exceptions import STAGE_DOCUMENT, ValidationError
from .models import (
    FORMAT_VERSION,
    NFC,
    PASS_JSON_SCHEMA,
    STYLE_KEYS,
    Barcode,
    Beacon,
    BoardingPassFields,
    Location,
    PassFields,
    PassStyle,
    RGBColor,
    to_json_value,
    validate_json_value,
)
from .translations import LocaleLabels, TranslationRegistry

logger = logging.getLogger(__name__)

PASS_JSON_NAME = "pass.json"
STRINGS_FILE_NAME = "pass.strings"

REQUIRED_ATTRIBUTES = (
    "passTypeIdentifier",
    "teamIdentifier",
    "serialNumber",
    "description",
    "organizationName",
)


def strings_member_name(locale: str) -> str:
    return f"{locale}.lproj/{STRINGS_FILE_NAME}"


def _string(name, value):
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string, got {type(value).__name__}", stage=STAGE_DOCUMENT)
    return value


def _non_empty_string(name, value):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string", stage=STAGE_DOCUMENT)
    return value


def _boolean(name, value):
    if not isinstance(value, bool):
        raise ValidationError(f"{name} must be a boolean", stage=STAGE_DOCUMENT)
    return value


def _number(name, value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number", stage=STAGE_DOCUMENT)
    return value


def _color(name, value):
    if isinstance(value, RGBColor):
        return value
    if isinstance(value, str):
        return RGBColor.parse(value)
    raise ValidationError(f"{name} must be an RGBColor or 'rgb(r, g, b)' string", stage=STAGE_DOCUMENT)


def _date_or_string(name, value):
    if isinstance(value, (str, date)):
        return value
    raise ValidationError(f"{name} must be an ISO-8601 string or date", stage=STAGE_DOCUMENT)


def _instance_of(cls):
    def check(name, value):
        if not isinstance(value, cls):
            raise ValidationError(f"{name} must be {cls.__name__}, got {type(value).__name__}", stage=STAGE_DOCUMENT)
        return value
    return check


def _list_of(item_check):
    def check(name, value):
        if not isinstance(value, (list, tuple)):
            raise ValidationError(f"{name} must be a list", stage=STAGE_DOCUMENT)
        return [item_check(f"{name}[{i}]", item) for i, item in enumerate(value)]
    return check


def _json_value(name, value):
    try:
        return validate_json_value(value, name)
    except ValidationError as e:
        raise ValidationError(e.message, stage=STAGE_DOCUMENT) from e


def _style_fields(cls):
    def check(name, value):
        # Exact type; subclasses carry style-specific keys
        if type(value) is not cls:
            raise ValidationError(f"{name} must be {cls.__name__}, got {type(value).__name__}", stage=STAGE_DOCUMENT)
        try:
            value.validate()
        except ValidationError as e:
            raise ValidationError(f"{name}: {e.message}", stage=STAGE_DOCUMENT) from e
        return value
    return check


def _integer(name, value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer", stage=STAGE_DOCUMENT)
    return value


ATTRIBUTE_SHAPES: Dict[str, Callable[[str, Any], Any]] = {
    "passTypeIdentifier": _non_empty_string,
    "teamIdentifier": _non_empty_string,
    "serialNumber": _non_empty_string,
    "description": _non_empty_string,
    "organizationName": _non_empty_string,
    "appLaunchURL": _string,
    "associatedStoreIdentifiers": _list_of(_integer),
    "authenticationToken": _string,
    "backgroundColor": _color,
    "foregroundColor": _color,
    "labelColor": _color,
    "barcodes": _list_of(_instance_of(Barcode)),
    "beacons": _list_of(_instance_of(Beacon)),
    "locations": _list_of(_instance_of(Location)),
    "nfc": _instance_of(NFC),
    "expirationDate": _date_or_string,
    "relevantDate": _date_or_string,
    "groupingIdentifier": _string,
    "logoText": _string,
    "maxDistance": _number,
    "sharingProhibited": _boolean,
    "suppressStripShine": _boolean,
    "voided": _boolean,
    "webServiceURL": _string,
    "userInfo": _json_value,
    PassStyle.BOARDING_PASS.value: _style_fields(BoardingPassFields),
    PassStyle.COUPON.value: _style_fields(PassFields),
    PassStyle.EVENT_TICKET.value: _style_fields(PassFields),
    PassStyle.GENERIC.value: _style_fields(PassFields),
    PassStyle.STORE_CARD.value: _style_fields(PassFields),
}


@dataclass(frozen=True)
class PassOutput:
    """Immutable snapshot of a finished pass document and its string tables"""

    pass_json: bytes
    translation_tables: Mapping[str, Tuple[str, ...]]

    @property
    def document(self) -> Dict:
        # Fresh copy on every access so the snapshot cannot be mutated
        return json.loads(self.pass_json.decode("utf-8"))

    def string_tables(self) -> Dict[str, bytes]:
        return {
            strings_member_name(locale): "\n".join(lines).encode("utf-8")
            for locale, lines in self.translation_tables.items()
        }

    def members(self) -> Dict[str, bytes]:
        """pass.json plus every localized string table, keyed by member name"""
        members = {PASS_JSON_NAME: self.pass_json}
        members.update(self.string_tables())
        return members


class PassBuilder:
    """Accumulates pass attributes and translations, then freezes into a PassOutput"""

    def __init__(self, pass_type_identifier: str, team_identifier: str, serial_number: str,
                 description: str, organization_name: str,
                 registry: Optional[TranslationRegistry] = None):
        base = {
            "passTypeIdentifier": pass_type_identifier,
            "teamIdentifier": team_identifier,
            "serialNumber": serial_number,
            "description": description,
            "organizationName": organization_name,
        }
        missing = [name for name, value in base.items() if not isinstance(value, str) or not value.strip()]
        if missing:
            raise ValidationError(f"Missing required pass attributes: {', '.join(missing)}", stage=STAGE_DOCUMENT)

        self._attributes: Dict[str, Any] = {"formatVersion": FORMAT_VERSION}
        self._attributes.update(base)
        self._registry = registry if registry is not None else TranslationRegistry()
        self._output: Optional[PassOutput] = None

    @property
    def frozen(self) -> bool:
        return self._output is not None

    @property
    def style(self) -> Optional[str]:
        for key in STYLE_KEYS:
            if key in self._attributes:
                return key
        return None

    def _ensure_mutable(self):
        if self.frozen:
            raise ValidationError("Pass has already been output and can no longer change", stage=STAGE_DOCUMENT)

    def set(self, key: str, value: Any) -> "PassBuilder":
        """Assign one top-level pass attribute; returns self for chaining"""
        self._ensure_mutable()
        if key == "formatVersion":
            raise ValidationError("formatVersion is fixed and cannot be set", stage=STAGE_DOCUMENT)
        shape = ATTRIBUTE_SHAPES.get(key)
        if shape is None:
            raise ValidationError(f"Unknown pass attribute '{key}'", stage=STAGE_DOCUMENT)

        current_style = self.style
        if key in STYLE_KEYS and current_style is not None and current_style != key:
            raise ValidationError(
                f"Pass already has style '{current_style}', cannot also set '{key}'", stage=STAGE_DOCUMENT
            )

        self._attributes[key] = shape(key, value)
        return self

    def get(self, key: str) -> Any:
        return self._attributes.get(key)

    def create_translation(self, labels: LocaleLabels) -> str:
        """Register a localized string and return the token to embed in a field"""
        self._ensure_mutable()
        return self._registry.create(labels)

    def to_dict(self) -> Dict:
        return {key: to_json_value(value) for key, value in self._attributes.items()}

    def output(self) -> PassOutput:
        """Validate, freeze and return the document snapshot"""
        if self._output is not None:
            return self._output

        try:
            document = self.to_dict()
        except ValidationError as e:
            raise ValidationError(e.message, stage=STAGE_DOCUMENT) from e
        try:
            jsonschema.validate(document, PASS_JSON_SCHEMA)
        except jsonschema.ValidationError as e:
            path = "/".join(str(p) for p in e.absolute_path) or "pass"
            raise ValidationError(f"Invalid pass document at {path}: {e.message}", stage=STAGE_DOCUMENT) from e

        tables = self._registry.tables()
        self._output = PassOutput(
            pass_json=json.dumps(document, ensure_ascii=False, indent=2).encode("utf-8"),
            translation_tables=MappingProxyType(tables),
        )
        logger.info(
            f"Pass {document['serialNumber']} output with style={self.style} "
            f"and {len(tables)} locale table(s)"
        )
        return self._output
