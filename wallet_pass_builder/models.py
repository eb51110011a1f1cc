"""
Data models and schemas for the pass document.

Field names follow the Wallet pass.json keys when serialized; the Python
attributes use snake_case and ``to_dict`` does the mapping.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .exceptions import ValidationError

FORMAT_VERSION = 1


class PKBarcodeFormat(str, Enum):
    QR = "PKBarcodeFormatQR"
    PDF417 = "PKBarcodeFormatPDF417"
    AZTEC = "PKBarcodeFormatAztec"
    CODE128 = "PKBarcodeFormatCode128"


class PKNumberStyle(str, Enum):
    DECIMAL = "PKNumberStyleDecimal"
    PERCENT = "PKNumberStylePercent"
    SCIENTIFIC = "PKNumberStyleScientific"
    SPELL_OUT = "PKNumberStyleSpellOut"


class PKTextAlignment(str, Enum):
    LEFT = "PKTextAlignmentLeft"
    CENTER = "PKTextAlignmentCenter"
    RIGHT = "PKTextAlignmentRight"
    NATURAL = "PKTextAlignmentNatural"


class PKDateStyle(str, Enum):
    NONE = "PKDateStyleNone"
    SHORT = "PKDateStyleShort"
    MEDIUM = "PKDateStyleMedium"
    LONG = "PKDateStyleLong"
    FULL = "PKDateStyleFull"


class PKDataDetectorType(str, Enum):
    PHONE_NUMBER = "PKDataDetectorTypePhoneNumber"
    LINK = "PKDataDetectorTypeLink"
    ADDRESS = "PKDataDetectorTypeAddress"
    CALENDAR_EVENT = "PKDataDetectorTypeCalendarEvent"


class PKTransitType(str, Enum):
    AIR = "PKTransitTypeAir"
    BOAT = "PKTransitTypeBoat"
    BUS = "PKTransitTypeBus"
    GENERIC = "PKTransitTypeGeneric"
    TRAIN = "PKTransitTypeTrain"


class SupportedLocale(str, Enum):
    EN = "en"
    ES = "es"
    JA = "ja"
    KO = "ko"
    MS = "ms"
    ID = "id"
    TH = "th"
    ZH_HANS = "zh-Hans"
    ZH_HANT = "zh-Hant"
    # Region aliases resolve to the script variants above
    ZH_CN = "zh-Hans"
    ZH_HK = "zh-Hant"


class PassStyle(str, Enum):
    BOARDING_PASS = "boardingPass"
    COUPON = "coupon"
    EVENT_TICKET = "eventTicket"
    GENERIC = "generic"
    STORE_CARD = "storeCard"


STYLE_KEYS = tuple(style.value for style in PassStyle)

# Structured value for free-form attributes such as userInfo
JSONValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]

FieldValue = Union[str, int, float, date, datetime]

_RGB_PATTERN = re.compile(r"^\s*rgb\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*\)\s*$")


def validate_json_value(value: Any, path: str = "value") -> JSONValue:
    """Check that value is made only of JSON-compatible types"""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple)):
        return [validate_json_value(item, f"{path}[{i}]") for i, item in enumerate(value)]
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise ValidationError(f"{path} has non-string key {key!r}")
            result[key] = validate_json_value(item, f"{path}.{key}")
        return result
    raise ValidationError(f"{path} is not a JSON value: {type(value).__name__}")


def _enum_value(value):
    return value.value if isinstance(value, Enum) else value


def _compact(data: Dict) -> Dict:
    return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class RGBColor:
    """Color in the ``rgb(r, g, b)`` form Wallet expects"""

    red: int
    green: int
    blue: int

    def __post_init__(self):
        for channel in (self.red, self.green, self.blue):
            if isinstance(channel, bool) or not isinstance(channel, int) or not 0 <= channel <= 255:
                raise ValidationError(f"Color channel out of range: {channel!r}")

    @classmethod
    def parse(cls, text: str) -> "RGBColor":
        match = _RGB_PATTERN.match(text or "")
        if not match:
            raise ValidationError(f"Invalid color {text!r}, expected rgb(r, g, b)")
        return cls(*(int(part) for part in match.groups()))

    def __str__(self) -> str:
        return f"rgb({self.red}, {self.green}, {self.blue})"


@dataclass
class PassField:
    """A single field shown on the front or back of a pass"""

    key: str
    value: FieldValue
    label: Optional[str] = None
    attributed_value: Optional[FieldValue] = None
    change_message: Optional[str] = None
    currency_code: Optional[str] = None
    data_detector_types: Optional[List[PKDataDetectorType]] = None
    date_style: Optional[PKDateStyle] = None
    time_style: Optional[PKDateStyle] = None
    ignores_time_zone: Optional[bool] = None
    is_relative: Optional[bool] = None
    number_style: Optional[PKNumberStyle] = None
    text_alignment: Optional[PKTextAlignment] = None
    row: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.key, str) or not self.key:
            raise ValidationError("Field key must be a non-empty string")
        if isinstance(self.value, bool) or not isinstance(self.value, (str, int, float, date)):
            raise ValidationError(
                f"Field '{self.key}' value must be a string, number or date, got {type(self.value).__name__}"
            )
        if self.row is not None and self.row not in (0, 1):
            raise ValidationError(f"Field '{self.key}' row must be 0 or 1")

    @staticmethod
    def _serialize_value(value):
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        return value

    def to_dict(self) -> Dict:
        detectors = None
        if self.data_detector_types is not None:
            detectors = [_enum_value(d) for d in self.data_detector_types]
        return _compact({
            "key": self.key,
            "value": self._serialize_value(self.value),
            "label": self.label,
            "attributedValue": self._serialize_value(self.attributed_value),
            "changeMessage": self.change_message,
            "currencyCode": self.currency_code,
            "dataDetectorTypes": detectors,
            "dateStyle": _enum_value(self.date_style),
            "timeStyle": _enum_value(self.time_style),
            "ignoresTimeZone": self.ignores_time_zone,
            "isRelative": self.is_relative,
            "numberStyle": _enum_value(self.number_style),
            "textAlignment": _enum_value(self.text_alignment),
            "row": self.row,
        })


_FIELD_GROUPS = (
    ("header_fields", "headerFields"),
    ("primary_fields", "primaryFields"),
    ("secondary_fields", "secondaryFields"),
    ("auxiliary_fields", "auxiliaryFields"),
    ("back_fields", "backFields"),
)


@dataclass
class PassFields:
    """Ordered field collections of a style group"""

    header_fields: List[PassField] = field(default_factory=list)
    primary_fields: List[PassField] = field(default_factory=list)
    secondary_fields: List[PassField] = field(default_factory=list)
    auxiliary_fields: List[PassField] = field(default_factory=list)
    back_fields: List[PassField] = field(default_factory=list)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check entry types and key uniqueness; collections may change after construction"""
        for attr, json_name in _FIELD_GROUPS:
            seen = set()
            for entry in getattr(self, attr):
                if not isinstance(entry, PassField):
                    raise ValidationError(f"{json_name} entries must be PassField, got {type(entry).__name__}")
                if entry.key in seen:
                    raise ValidationError(f"Duplicate field key '{entry.key}' in {json_name}")
                if entry.row is not None and attr != "auxiliary_fields":
                    raise ValidationError(f"Field '{entry.key}' sets row outside auxiliaryFields")
                seen.add(entry.key)

    def to_dict(self) -> Dict:
        self.validate()
        result = {}
        for attr, json_name in _FIELD_GROUPS:
            entries = getattr(self, attr)
            if entries:
                result[json_name] = [entry.to_dict() for entry in entries]
        return result


@dataclass
class BoardingPassFields(PassFields):
    """Boarding pass style group, which also needs a transit type"""

    transit_type: PKTransitType = PKTransitType.GENERIC

    def to_dict(self) -> Dict:
        result = super().to_dict()
        result["transitType"] = _enum_value(self.transit_type)
        return result


@dataclass
class Barcode:
    format: PKBarcodeFormat
    message: str
    message_encoding: str = "iso-8859-1"
    alt_text: Optional[str] = None

    def to_dict(self) -> Dict:
        return _compact({
            "format": _enum_value(self.format),
            "message": self.message,
            "messageEncoding": self.message_encoding,
            "altText": self.alt_text,
        })


@dataclass
class Location:
    latitude: float
    longitude: float
    altitude: Optional[float] = None
    relevant_text: Optional[str] = None

    def to_dict(self) -> Dict:
        return _compact({
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
            "relevantText": self.relevant_text,
        })


@dataclass
class Beacon:
    proximity_uuid: str
    major: Optional[int] = None
    minor: Optional[int] = None
    relevant_text: Optional[str] = None

    def to_dict(self) -> Dict:
        return _compact({
            "proximityUUID": self.proximity_uuid,
            "major": self.major,
            "minor": self.minor,
            "relevantText": self.relevant_text,
        })


@dataclass
class NFC:
    message: str
    encryption_public_key: str
    requires_authentication: Optional[bool] = None

    def to_dict(self) -> Dict:
        return _compact({
            "message": self.message,
            "encryptionPublicKey": self.encryption_public_key,
            "requiresAuthentication": self.requires_authentication,
        })


def to_json_value(value: Any) -> Any:
    """Convert a model value into its pass.json representation"""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, RGBColor):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]
    if isinstance(value, dict):
        return {k: to_json_value(v) for k, v in value.items()}
    return value


_NON_EMPTY_STRING = {"type": "string", "minLength": 1, "pattern": r"\S"}

_FIELD_LIST_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["key", "value"],
        "properties": {
            "key": _NON_EMPTY_STRING,
            "value": {"type": ["string", "number"]},
            "label": {"type": "string"},
        },
    },
}

_STYLE_SCHEMA = {
    "type": "object",
    "properties": {json_name: _FIELD_LIST_SCHEMA for _, json_name in _FIELD_GROUPS},
}

# Structural checks only; full Wallet schema validation is out of scope
PASS_JSON_SCHEMA = {
    "type": "object",
    "required": [
        "formatVersion", "passTypeIdentifier", "teamIdentifier",
        "serialNumber", "organizationName", "description",
    ],
    "properties": {
        "formatVersion": {"const": FORMAT_VERSION},
        "passTypeIdentifier": _NON_EMPTY_STRING,
        "teamIdentifier": _NON_EMPTY_STRING,
        "serialNumber": _NON_EMPTY_STRING,
        "organizationName": _NON_EMPTY_STRING,
        "description": _NON_EMPTY_STRING,
        "backgroundColor": {"type": "string", "pattern": _RGB_PATTERN.pattern},
        "foregroundColor": {"type": "string", "pattern": _RGB_PATTERN.pattern},
        "labelColor": {"type": "string", "pattern": _RGB_PATTERN.pattern},
        "boardingPass": dict(_STYLE_SCHEMA, required=["transitType"]),
        "coupon": _STYLE_SCHEMA,
        "eventTicket": _STYLE_SCHEMA,
        "generic": _STYLE_SCHEMA,
        "storeCard": _STYLE_SCHEMA,
    },
}
