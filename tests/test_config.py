import os
import sys
import tempfile
import unittest
from unittest.mock import patch

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import set_env_vars
from doubtsolver.config import Settings, get_settings


class TestSettings(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(get_settings(), Settings())

    def test_from_env(self):
        env = {
            "DOUBTSOLVER_LOG_LEVEL": "debug",
            "DOUBTSOLVER_PORT": "9000",
            "DOUBTSOLVER_ERROR_EXCERPT_CHARS": "50",
            "DOUBTSOLVER_LANGUAGE": "Hindi",
        }
        with patch.dict(os.environ, env, clear=True):
            s = get_settings()
        self.assertEqual(s, Settings(log_level="DEBUG", port=9000, error_excerpt_chars=50, default_language="Hindi"))

    def test_bad_int(self):
        with patch.dict(os.environ, {"DOUBTSOLVER_PORT": "eighty"}, clear=True):
            with self.assertRaises(RuntimeError):
                get_settings()


class TestDotenv(unittest.TestCase):
    def test_load(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, ".env")
            with open(path, "w", encoding="utf-8") as fh:
                fh.write('# comment\nDOUBTSOLVER_PORT="8181"\nexport DOUBTSOLVER_LANGUAGE=Spanish\nbroken line\n')
            with patch.dict(os.environ, {"DOUBTSOLVER_LANGUAGE": "German"}, clear=True):
                applied = set_env_vars.load(path)
                self.assertEqual(applied, {"DOUBTSOLVER_PORT": "8181"})
                self.assertEqual(os.environ["DOUBTSOLVER_LANGUAGE"], "German")
                set_env_vars.load(path, override=True)
                self.assertEqual(os.environ["DOUBTSOLVER_LANGUAGE"], "Spanish")

    def test_read_pairs_and_status(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, ".env")
            with open(path, "w", encoding="utf-8") as fh:
                fh.write("#DOUBTSOLVER_PORT=1\nDOUBTSOLVER_LOG_LEVEL='debug'\nEMPTY=\n")
            self.assertEqual(set_env_vars.read_pairs(path), {"DOUBTSOLVER_LOG_LEVEL": "debug", "EMPTY": ""})
            with patch.dict(os.environ, {}, clear=True):
                set_env_vars.load(path)
                status = set_env_vars.status()
        self.assertTrue(status["DOUBTSOLVER_LOG_LEVEL"])
        self.assertFalse(status["DOUBTSOLVER_PORT"])

    def test_missing_file(self):
        self.assertEqual(set_env_vars.load("/nonexistent/.env"), {})


if __name__ == "__main__":
    unittest.main()
