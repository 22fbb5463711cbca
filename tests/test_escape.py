import shlex
import unittest

from remote_shell import escape


class EscapeTests(unittest.TestCase):
    def test_wraps_in_single_quotes(self) -> None:
        self.assertEqual(escape("hello world"), "'hello world'")
        self.assertEqual(escape(""), "''")

    def test_embedded_quote_closes_and_reopens(self) -> None:
        self.assertEqual(escape("it's"), "'it'\\''s'")
        self.assertEqual(escape("'"), "''\\'''")

    def test_shell_reads_back_the_same_word(self) -> None:
        samples = ["", "'", "''", "it's", "line\nbreak", "$(whoami) `id` $HOME", "a\\b\"c", "*"]
        for sample in samples:
            with self.subTest(sample=sample):
                self.assertEqual(shlex.split(escape(sample)), [sample])


if __name__ == "__main__":
    unittest.main()
