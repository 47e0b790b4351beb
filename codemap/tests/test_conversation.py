import tempfile
import unittest
from pathlib import Path

from codemap.agent.conversation import StageConversation
from codemap.agent.errors import ModelCallError
from codemap.agent.tools import WorkspaceToolbox
from codemap.tests.fakes import EventRecorder, ScriptedProvider, tool_reply


class StageConversationTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        (root / "main.py").write_text("print('hello')\n" * 10, encoding="utf-8")
        self.toolbox = WorkspaceToolbox(root)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _conversation(self, provider: ScriptedProvider, recorder: EventRecorder, **kwargs) -> StageConversation:
        conversation = StageConversation(provider, self.toolbox, recorder, **kwargs)
        conversation.add_system("system")
        return conversation

    async def test_tool_results_are_fed_back(self) -> None:
        provider = ScriptedProvider(
            [
                tool_reply(
                    ("read_file", {"path": "main.py"}),
                    ("list_directory", {"path": "."}),
                ),
                "final answer",
            ]
        )
        recorder = EventRecorder()
        conversation = self._conversation(provider, recorder, tool_result_preview_chars=20)

        reply = await conversation.run_turn("go")

        self.assertEqual(reply, "final answer")
        second_turn = provider.tool_turns[1]
        self.assertEqual(second_turn[2]["tool_calls"][0]["function"]["name"], "read_file")
        tool_messages = [m for m in second_turn if m["role"] == "tool"]
        self.assertEqual([m["tool_call_id"] for m in tool_messages], ["call_0", "call_1"])
        self.assertIn("print('hello')", tool_messages[0]["content"])

        tool_events = recorder.of_kind("tool_call")
        self.assertEqual([e.tool for e in tool_events], ["read_file", "list_directory"])
        self.assertTrue(tool_events[0].result.endswith("..."))
        self.assertLessEqual(len(tool_events[0].result), 23)

    async def test_round_budget_forces_final_answer(self) -> None:
        provider = ScriptedProvider(
            [
                tool_reply(("list_directory", {"path": "."})),
                tool_reply(("list_directory", {"path": "."})),
                "forced answer",
            ]
        )
        conversation = self._conversation(provider, EventRecorder(), max_tool_rounds=2)

        self.assertEqual(await conversation.run_turn("go"), "forced answer")
        self.assertIn("tool budget", provider.tool_turns[-1][-1]["content"])

    async def test_tools_after_budget_raise(self) -> None:
        provider = ScriptedProvider(
            [tool_reply(("list_directory", {"path": "."})) for _ in range(2)]
        )
        conversation = self._conversation(provider, EventRecorder(), max_tool_rounds=1)
        with self.assertRaises(ModelCallError):
            await conversation.run_turn("go")

    async def test_provider_failure_wrapped(self) -> None:
        provider = ScriptedProvider([RuntimeError("LLM completion failed: boom")])
        conversation = self._conversation(provider, EventRecorder())
        with self.assertRaises(ModelCallError) as ctx:
            await conversation.run_turn("go")
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)

    async def test_fork_copies_history(self) -> None:
        provider = ScriptedProvider(["first", "branch"])
        conversation = self._conversation(provider, EventRecorder())
        await conversation.run_turn("shared")

        fork = conversation.fork("branch")
        await fork.run_turn("only in fork")

        self.assertEqual(len(conversation.messages), 3)
        self.assertEqual(len(fork.messages), 5)
        self.assertEqual(fork.messages[:3], conversation.messages)


if __name__ == "__main__":
    unittest.main()
