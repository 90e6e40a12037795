import unittest

from billed.files import safe_filename


class TestSafeFilename(unittest.TestCase):
    def test_drops_path_components(self) -> None:
        self.assertEqual(safe_filename("../a/b/receipt.png"), "receipt.png")

    def test_rejects_dot_names(self) -> None:
        self.assertEqual(safe_filename("."), "upload.bin")
        self.assertEqual(safe_filename("..", default="attachment"), "attachment")

    def test_strips_nulls_and_unsafe_chars(self) -> None:
        self.assertEqual(safe_filename("note de\x00 frais?.jpg"), "note_de_frais_.jpg")

    def test_long_names_keep_extension(self) -> None:
        name = safe_filename("a" * 300 + ".png", max_len=20)
        self.assertEqual(len(name), 20)
        self.assertTrue(name.endswith(".png"))
