import contextlib
import io
import json
import os
import tempfile
import unittest
from pathlib import Path

from codemap.api.cli.main import create_parser, main
from codemap.core.models import Codemap, Location, Trace
from codemap.storage.codemap_storage import JsonCodemapStore
from codemap.tests.fakes import MINIMAL_TEMPLATES, write_templates


def _run(argv: list[str]) -> tuple[int, str, str]:
    stdout, stderr = io.StringIO(), io.StringIO()
    code = 0
    with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
        try:
            main(argv)
        except SystemExit as exc:
            code = exc.code or 0
    return code, stdout.getvalue(), stderr.getvalue()


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self._saved_env = {
            key: os.environ.get(key) for key in ("OPENAI_API_KEY", "CODEMAP_LLM_API_KEY")
        }
        for key in self._saved_env:
            os.environ.pop(key, None)

    def tearDown(self) -> None:
        for key, value in self._saved_env.items():
            if value is not None:
                os.environ[key] = value
        self._tmp.cleanup()

    def test_parser_defaults(self) -> None:
        args = create_parser().parse_args(["generate", "How does login work?"])

        self.assertEqual(args.command, "generate")
        self.assertIsNone(args.mode)
        self.assertFalse(args.json)

    def test_bundled_templates_all_load(self) -> None:
        code, out, _ = _run(["templates", "check"])

        self.assertEqual(code, 0)
        self.assertIn("Loaded 13/13 prompt templates", out)

    def test_missing_template_reported(self) -> None:
        templates = dict(MINIMAL_TEMPLATES)
        del templates["smart/stage5.md"]
        templates_root = write_templates(self.root / "templates", templates)

        code, out, _ = _run(["templates", "check", "--templates-root", str(templates_root)])

        self.assertEqual(code, 1)
        self.assertIn("Loaded 12/13", out)
        self.assertIn("missing: smart/stage5.md", out)

    def test_history_list_and_show(self) -> None:
        storage = self.root / "maps"
        codemap = Codemap(
            title="Token refresh",
            traces=[Trace(id="1", title="Refresh", locations=[Location(id="1a", path="tokens.py", line_number=3)])],
        )
        path = JsonCodemapStore(storage).save(codemap)

        code, out, _ = _run(["history", "list", "--storage-dir", str(storage)])
        self.assertEqual(code, 0)
        self.assertIn(path.name, out)
        self.assertIn("Token refresh", out)

        code, out, _ = _run(["history", "show", path.name, "--json", "--storage-dir", str(storage)])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["traces"][0]["locations"][0]["path"], "tokens.py")

        code, _, _ = _run(["history", "show", "nope.json", "--storage-dir", str(storage)])
        self.assertEqual(code, 1)

    def test_generate_without_key_fails(self) -> None:
        code, _, err = _run(
            ["generate", "q", "--workspace", str(self.root), "--storage-dir", str(self.root / "maps")]
        )

        self.assertEqual(code, 1)
        self.assertIn("CODEMAP_LLM_API_KEY", err)

    def test_check_without_key_fails(self) -> None:
        code, _, err = _run(["check"])

        self.assertEqual(code, 1)
        self.assertIn("Not configured", err)


if __name__ == "__main__":
    unittest.main()
