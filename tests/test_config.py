import os
import tempfile
import unittest
from unittest.mock import patch

from lichess_board_simple.config import load_settings


class SettingsTests(unittest.TestCase):
    def _yaml(self, text: str) -> str:
        fd, path = tempfile.mkstemp(suffix=".yml")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        self.addCleanup(os.remove, path)
        return path

    def test_yaml_beats_environment(self):
        path = self._yaml("LICHESS_TOKEN: from-yaml\nENGINE_DEPTH: 12\nLICHESS_HOST: https://example.org/\n")
        with patch.dict(os.environ, {"LICHESS_TOKEN": "from-env", "ENGINE_MOVETIME_MS": "750"}):
            s = load_settings(path)
        self.assertEqual(s.lichess_token, "from-yaml")
        self.assertEqual(s.lichess_host, "https://example.org")
        self.assertEqual(s.engine_depth, 12)
        self.assertEqual(s.engine_movetime_ms, 750)

    def test_defaults_without_file(self):
        keys = ("LICHESS_TOKEN", "LICHESS_HOST", "LICHESS_TIMEOUT_S", "ENGINE_DEPTH", "ENGINE_MOVETIME_MS")
        env = {k: v for k, v in os.environ.items() if k not in keys}
        with patch.dict(os.environ, env, clear=True):
            s = load_settings(os.path.join(tempfile.gettempdir(), "missing-settings-file.yml"))
        self.assertEqual(s.lichess_token, "")
        self.assertEqual(s.lichess_host, "https://lichess.org")
        self.assertEqual(s.request_timeout_s, 30.0)
        self.assertIsNone(s.engine_depth)
        self.assertIsNone(s.engine_movetime_ms)


if __name__ == "__main__":
    unittest.main()
