"""
Tests for the pass document models.
"""

import unittest
from datetime import datetime, timezone

from wallet_pass_builder.exceptions import ValidationError
from wallet_pass_builder.models import (
    Barcode,
    BoardingPassFields,
    PassField,
    PassFields,
    PKBarcodeFormat,
    PKDateStyle,
    PKTransitType,
    RGBColor,
    SupportedLocale,
    to_json_value,
    validate_json_value,
)


class TestRGBColor(unittest.TestCase):

    def test_parse_and_format(self):
        color = RGBColor.parse("rgb(234,234, 234)")
        self.assertEqual(color, RGBColor(234, 234, 234))
        self.assertEqual(str(color), "rgb(234, 234, 234)")

    def test_rejects_bad_text(self):
        for text in ("#ffffff", "rgb(1, 2)", "rgb(a, b, c)", ""):
            with self.assertRaises(ValidationError):
                RGBColor.parse(text)

    def test_rejects_out_of_range_channel(self):
        with self.assertRaises(ValidationError):
            RGBColor(256, 0, 0)
        with self.assertRaises(ValidationError):
            RGBColor.parse("rgb(300, 0, 0)")


class TestPassField(unittest.TestCase):

    def test_to_dict_uses_pass_json_names(self):
        expires = datetime(2030, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        entry = PassField(key="expires", value=expires, label="EXPIRES",
                          date_style=PKDateStyle.SHORT, ignores_time_zone=True)
        self.assertEqual(entry.to_dict(), {
            "key": "expires",
            "value": "2030-01-02T03:04:05+00:00",
            "label": "EXPIRES",
            "dateStyle": "PKDateStyleShort",
            "ignoresTimeZone": True,
        })

    def test_number_value_kept(self):
        self.assertEqual(PassField(key="number", value=1234567).to_dict()["value"], 1234567)

    def test_invalid_field(self):
        with self.assertRaises(ValidationError):
            PassField(key="", value="x")
        with self.assertRaises(ValidationError):
            PassField(key="k", value=["not", "allowed"])
        with self.assertRaises(ValidationError):
            PassField(key="k", value=True)
        with self.assertRaises(ValidationError):
            PassField(key="k", value="x", row=2)


class TestPassFields(unittest.TestCase):

    def test_duplicate_key_in_collection(self):
        with self.assertRaises(ValidationError):
            PassFields(primary_fields=[PassField("name", "A"), PassField("name", "B")])

    def test_same_key_in_different_collections(self):
        fields = PassFields(primary_fields=[PassField("name", "A")], back_fields=[PassField("name", "B")])
        self.assertEqual(set(fields.to_dict()), {"primaryFields", "backFields"})

    def test_row_only_on_auxiliary(self):
        PassFields(auxiliary_fields=[PassField("seat", "12A", row=1)])
        with self.assertRaises(ValidationError):
            PassFields(primary_fields=[PassField("seat", "12A", row=1)])

    def test_boarding_pass_has_transit_type(self):
        fields = BoardingPassFields(primary_fields=[PassField("origin", "JFK")], transit_type=PKTransitType.AIR)
        self.assertEqual(fields.to_dict()["transitType"], "PKTransitTypeAir")


class TestJSONValues(unittest.TestCase):

    def test_nested_structure_accepted(self):
        value = {"tier": "gold", "points": [1, 2.5, None], "active": True}
        self.assertEqual(validate_json_value(value), value)

    def test_rejects_non_json(self):
        with self.assertRaises(ValidationError):
            validate_json_value({"when": datetime.now()})
        with self.assertRaises(ValidationError):
            validate_json_value({1: "int key"})

    def test_to_json_value(self):
        barcode = Barcode(PKBarcodeFormat.QR, "0123456789101112", alt_text="********89101112")
        self.assertEqual(to_json_value([barcode, RGBColor(1, 2, 3)]), [
            {
                "format": "PKBarcodeFormatQR",
                "message": "0123456789101112",
                "messageEncoding": "iso-8859-1",
                "altText": "********89101112",
            },
            "rgb(1, 2, 3)",
        ])

    def test_locale_aliases(self):
        self.assertIs(SupportedLocale.ZH_HK, SupportedLocale.ZH_HANT)
        self.assertEqual(SupportedLocale.ZH_CN.value, "zh-Hans")


if __name__ == "__main__":
    unittest.main()
