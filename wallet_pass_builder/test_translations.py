"""
Tests for the translation registry.
"""

import itertools
import unittest

from wallet_pass_builder.exceptions import ValidationError
from wallet_pass_builder.models import SupportedLocale
from wallet_pass_builder.translations import MAX_TOKEN_ATTEMPTS, TranslationRegistry, format_strings_line


class TestTranslationRegistry(unittest.TestCase):

    def test_tokens_are_unique(self):
        registry = TranslationRegistry()
        tokens = [registry.create({"en": f"label {i}"}) for i in range(500)]
        self.assertEqual(len(set(tokens)), 500)
        self.assertEqual(len(registry), 500)

    def test_collision_is_regenerated(self):
        candidates = iter(["T1", "T1", "T1", "T2"])
        registry = TranslationRegistry(token_factory=lambda: next(candidates))
        self.assertEqual(registry.create({"en": "Name"}), "T1")
        self.assertEqual(registry.create({"en": "Number"}), "T2")
        self.assertEqual(registry.get("T1")["en"], "Name")

    def test_gives_up_when_factory_keeps_colliding(self):
        registry = TranslationRegistry(token_factory=lambda: "same")
        registry.create({"en": "first"})
        with self.assertRaises(ValidationError):
            registry.create({"en": "second"})
        self.assertEqual(registry.get("same")["en"], "first")
        self.assertGreater(MAX_TOKEN_ATTEMPTS, 1)

    def test_tables_per_locale(self):
        counter = itertools.count(1)
        registry = TranslationRegistry(token_factory=lambda: f"T{next(counter)}")
        registry.create({SupportedLocale.EN: "Name", SupportedLocale.ZH_HANT: "名稱"})
        registry.create({"en": "Number"})

        tables = registry.tables()
        self.assertEqual(set(tables), {"en", "zh-Hant"})
        self.assertCountEqual(tables["en"], ['"T1" = "Name";', '"T2" = "Number";'])
        self.assertEqual(tables["zh-Hant"], ('"T1" = "名稱";',))
        self.assertEqual(registry.locales(), ("en", "zh-Hant"))

    def test_empty_registry_has_no_tables(self):
        self.assertEqual(TranslationRegistry().tables(), {})

    def test_stored_labels_are_immutable_copies(self):
        labels = {"en": "Name"}
        registry = TranslationRegistry()
        token = registry.create(labels)
        labels["en"] = "Changed"
        self.assertEqual(registry.get(token)["en"], "Name")
        with self.assertRaises(TypeError):
            registry.get(token)["en"] = "Mutated"

    def test_rejects_empty_or_bad_labels(self):
        registry = TranslationRegistry()
        with self.assertRaises(ValidationError):
            registry.create({})
        with self.assertRaises(ValidationError):
            registry.create({"en": 12})
        with self.assertRaises(ValidationError):
            registry.create({" ": "blank locale"})

    def test_rejects_locales_unusable_as_directory_names(self):
        registry = TranslationRegistry()
        for locale in ("../evil", "en/x", "en\\x", "..", "en us", "en\n", "", "e", 7):
            with self.subTest(locale=locale):
                with self.assertRaises(ValidationError) as ctx:
                    registry.create({locale: "x"})
                self.assertEqual(ctx.exception.stage, "document")
        self.assertEqual(len(registry), 0)

    def test_accepts_language_and_region_locales(self):
        registry = TranslationRegistry()
        for locale in ("en", "pt-BR", "zh_TW", "zh-Hant", "fil"):
            with self.subTest(locale=locale):
                token = registry.create({locale: "x"})
                self.assertEqual(dict(registry.get(token)), {locale: "x"})

    def test_strings_escaping(self):
        self.assertEqual(format_strings_line("T", 'Say "hi"\nnow \\ later'),
                         '"T" = "Say \\"hi\\"\\nnow \\\\ later";')


if __name__ == "__main__":
    unittest.main()
