import argparse
import os
import unittest
from pathlib import Path

from codemap.core.config.config import Config
from codemap.core.config.generation_config import GenerationConfig
from codemap.core.config.llm_config import DEFAULT_LLM_MODEL, LLMConfig

_ENV_KEYS = (
    "OPENAI_API_KEY",
    "CODEMAP_LLM_API_KEY",
    "CODEMAP_LLM_MODEL",
    "CODEMAP_LLM_BASE_URL",
    "CODEMAP_DEFAULT_MODE",
    "CODEMAP_MAX_TOOL_ROUNDS",
    "CODEMAP_TRACE_CONCURRENCY",
)


class ConfigEnvTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._saved_env = {key: os.environ.get(key) for key in _ENV_KEYS}
        for key in _ENV_KEYS:
            os.environ.pop(key, None)

    def tearDown(self) -> None:
        for key, value in self._saved_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value


class LLMConfigTests(ConfigEnvTestCase):
    def test_defaults_without_key(self) -> None:
        cfg = LLMConfig()

        self.assertEqual(cfg.model, DEFAULT_LLM_MODEL)
        self.assertFalse(cfg.is_provider_configured())
        self.assertEqual(len(cfg.get_missing_config()), 1)
        self.assertNotIn("api_key", cfg.get_provider_config())

    def test_openai_key_fallback(self) -> None:
        os.environ["OPENAI_API_KEY"] = "sk-openai"

        cfg = LLMConfig()

        self.assertTrue(cfg.is_provider_configured())
        self.assertEqual(cfg.get_provider_config()["api_key"], "sk-openai")

    def test_codemap_key_and_model(self) -> None:
        os.environ["CODEMAP_LLM_API_KEY"] = "sk-codemap"
        os.environ["CODEMAP_LLM_MODEL"] = "gpt-4.1"
        os.environ["CODEMAP_LLM_BASE_URL"] = "https://llm.example.com/v1/"

        provider_config = LLMConfig().get_provider_config()

        self.assertEqual(provider_config["api_key"], "sk-codemap")
        self.assertEqual(provider_config["model"], "gpt-4.1")
        self.assertEqual(provider_config["base_url"], "https://llm.example.com/v1")
        self.assertEqual(provider_config["provider"], "openai")

    def test_repr_hides_key(self) -> None:
        cfg = LLMConfig(api_key="sk-secret")
        self.assertNotIn("sk-secret", repr(cfg))

    def test_invalid_values_rejected(self) -> None:
        with self.assertRaises(ValueError):
            LLMConfig(base_url="llm.example.com")
        with self.assertRaises(ValueError):
            LLMConfig(reasoning_effort="extreme")


class GenerationConfigTests(ConfigEnvTestCase):
    def test_defaults(self) -> None:
        cfg = GenerationConfig()

        self.assertEqual(cfg.default_mode, "smart")
        self.assertEqual(cfg.recent_files_limit, 20)
        self.assertEqual(cfg.suggestion_file_count, 10)
        self.assertEqual(cfg.min_suggestion_files, 3)
        self.assertEqual(cfg.suggestion_debounce_seconds, 30.0)

    def test_env_overrides(self) -> None:
        os.environ["CODEMAP_DEFAULT_MODE"] = "fast"
        os.environ["CODEMAP_MAX_TOOL_ROUNDS"] = "5"
        os.environ["CODEMAP_TRACE_CONCURRENCY"] = "3"

        cfg = GenerationConfig()

        self.assertEqual(cfg.default_mode, "fast")
        self.assertEqual(cfg.max_tool_rounds, 5)
        self.assertEqual(cfg.trace_concurrency, 3)

    def test_bad_mode_rejected(self) -> None:
        with self.assertRaises(ValueError):
            GenerationConfig(default_mode="thorough")


class ConfigFromArgsTests(ConfigEnvTestCase):
    def test_cli_overrides_env(self) -> None:
        os.environ["CODEMAP_MAX_TOOL_ROUNDS"] = "5"
        os.environ["CODEMAP_LLM_MODEL"] = "gpt-4.1"
        args = argparse.Namespace(
            llm_model="gpt-4.1-nano",
            llm_base_url=None,
            max_tool_rounds=7,
            trace_concurrency=None,
            storage_dir="~/maps",
        )

        config = Config.from_args(args)

        self.assertEqual(config.llm.model, "gpt-4.1-nano")
        self.assertEqual(config.generation.max_tool_rounds, 7)
        self.assertEqual(config.generation.trace_concurrency, 8)
        self.assertEqual(config.generation.storage_dir, Path("~/maps").expanduser())

    def test_without_args_reads_env(self) -> None:
        os.environ["CODEMAP_MAX_TOOL_ROUNDS"] = "4"
        self.assertEqual(Config.from_args().generation.max_tool_rounds, 4)


if __name__ == "__main__":
    unittest.main()
