import os
import unittest

from rapport.config import Settings


class TestConfig(unittest.TestCase):
    def _without(self, *names):
        saved = {name: os.environ.pop(name) for name in names if name in os.environ}
        self.addCleanup(os.environ.update, saved)

    def test_settings_defaults(self):
        self._without("RAPPORT_GROK_MODEL", "RAPPORT_CACHE_TTL_SECONDS", "RAPPORT_CONTACT_USER_AGENT")
        s = Settings()
        self.assertEqual(s.grok_model, "grok-3")
        self.assertEqual(s.grok_api_path, "/v1/chat/completions")
        self.assertEqual(s.cache_ttl_seconds, 21600)
        self.assertEqual(s.contact_user_agent, "RapportBuilder/1.0 (contact@rapportbuilder.com)")
        self.assertEqual(s.synthesis_timeout_seconds, 45.0)

    def test_settings_env_override(self):
        previous = os.environ.get("RAPPORT_CACHE_TTL_SECONDS")
        try:
            os.environ["RAPPORT_CACHE_TTL_SECONDS"] = "60"
            s = Settings()
            self.assertEqual(s.cache_ttl_seconds, 60)
        finally:
            if previous is None:
                os.environ.pop("RAPPORT_CACHE_TTL_SECONDS", None)
            else:
                os.environ["RAPPORT_CACHE_TTL_SECONDS"] = previous

    def test_grok_url_normalized(self):
        self.assertEqual(Settings(grok_api_url="https://api.x.ai/ ").grok_api_url, "https://api.x.ai")
        self.assertIsNone(Settings(grok_api_url="   ").grok_api_url)

    def test_blank_user_agent_falls_back(self):
        s = Settings(contact_user_agent="  ")
        self.assertEqual(s.contact_user_agent, "RapportBuilder/1.0 (contact@rapportbuilder.com)")


if __name__ == "__main__":
    unittest.main()
