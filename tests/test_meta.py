import unittest
from unittest.mock import patch

from keen.meta import get_meta_http_headers, get_user_agent


class TestMeta(unittest.TestCase):
    """Test cases for the meta module."""

    @patch("keen.meta.platform.system")
    @patch("keen.meta.platform.machine")
    @patch("keen.meta.platform.python_version")
    @patch("keen.meta.get_version")
    def test_get_user_agent_values(
        self, mock_get_version, mock_python_version, mock_machine, mock_system
    ):
        """Test get_user_agent with specific platform values."""
        mock_get_version.return_value = "0.1.0"
        mock_system.return_value = "Linux"
        mock_machine.return_value = "aarch64"
        mock_python_version.return_value = "3.12.1"

        self.assertEqual(
            get_user_agent(), "keen-python/0.1.0 (Linux arm_64; Python/3.12.1)"
        )

        mock_machine.return_value = "AMD64"
        mock_system.return_value = "Windows"
        self.assertEqual(
            get_user_agent(), "keen-python/0.1.0 (Windows x86_64; Python/3.12.1)"
        )

    @patch("keen.meta.get_version")
    def test_unknown_version(self, mock_get_version):
        """Test that a missing distribution does not break the headers."""
        mock_get_version.return_value = None

        headers = get_meta_http_headers()

        self.assertEqual(headers["Keen-Client-Version"], "")
        self.assertIn("keen-python/unknown", headers["User-Agent"])


if __name__ == "__main__":
    unittest.main()
