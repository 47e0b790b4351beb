import tempfile
import unittest
from pathlib import Path

from codemap.agent.suggestions import format_recent_files, generate_suggestions
from codemap.prompts.template_engine import PromptTemplateEngine
from codemap.tests.fakes import ScriptedProvider, manager_for, write_templates


class SuggestionAgentTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.templates = PromptTemplateEngine(write_templates(Path(self._tmp.name)))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_format_recent_files(self) -> None:
        self.assertEqual(format_recent_files(["a.py", "b/c.py"]), "1. a.py\n2. b/c.py")

    async def test_parses_fenced_array_and_defaults_ids(self) -> None:
        provider = ScriptedProvider(
            [
                'Here you go:\n```json\n[{"id": "auth", "text": "How is a session created?"},'
                ' {"text": "Where are tokens refreshed?"}]\n```'
            ]
        )

        suggestions = await generate_suggestions(
            manager_for(provider), self.templates, ["auth.py", "tokens.py", "session.py"]
        )

        self.assertEqual([s.id for s in suggestions], ["auth", "suggestion-1"])
        self.assertEqual(suggestions[1].text, "Where are tokens refreshed?")
        self.assertIsNone(suggestions[0].sub)
        self.assertEqual(provider.prompts[0][0], "FILES\n1. auth.py\n2. tokens.py\n3. session.py")

    async def test_failures_yield_empty_list(self) -> None:
        for reply in ("no json at all", RuntimeError("LLM completion failed: 500"), '{"text": 1}'):
            with self.subTest(reply=reply):
                provider = ScriptedProvider([reply])
                self.assertEqual(
                    await generate_suggestions(manager_for(provider), self.templates, ["a.py"]),
                    [],
                )

    async def test_unconfigured_client(self) -> None:
        self.assertEqual(await generate_suggestions(None, self.templates, ["a.py"]), [])


if __name__ == "__main__":
    unittest.main()
