import unittest
from unittest import mock

from cardinalnews.errors import InvalidRequestError
from cardinalnews.translation.translate import Translator, parse_translations, split_translation_lines


class TestTranslator(unittest.TestCase):
    def test_english_target_returns_input(self):
        gateway = mock.Mock()
        self.assertEqual(Translator(gateway).translate(["Hello"], "EN"), ["Hello"])
        self.assertEqual(Translator(gateway).translate([], "fr"), [])
        self.assertEqual(Translator(gateway).translate(None, "fr"), [])
        gateway.chat.assert_not_called()

    def test_rejects_non_list(self):
        with self.assertRaises(InvalidRequestError):
            Translator(mock.Mock()).translate("Hello", "fr")

    def test_json_answer(self):
        gateway = mock.Mock()
        gateway.chat.return_value = '```json\n["Hola", "<b>Adiós</b>"]\n```'
        self.assertEqual(Translator(gateway).translate(["Hello", "<b>Bye</b>"], "es"), ["Hola", "<b>Adiós</b>"])
        self.assertIn("es", gateway.chat.call_args[0][0][0]["content"])

    def test_line_fallback(self):
        self.assertEqual(split_translation_lines("1. Bonjour\n\n2) Au revoir"), ["Bonjour", "Au revoir"])
        self.assertEqual(parse_translations("Bonjour\nAu revoir"), ["Bonjour", "Au revoir"])


if __name__ == "__main__":
    unittest.main()
