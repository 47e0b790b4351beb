import asyncio
import unittest

from codemap.session.debounce import Debouncer
from codemap.session.recent_files import RecentFiles


class RecentFilesTests(unittest.TestCase):
    def test_most_recent_first_without_duplicates(self):
        recent = RecentFiles()
        for path in ("a.py", "b.py", "c.py", "a.py"):
            recent.touch(path)

        self.assertEqual(recent.recent(), ["a.py", "c.py", "b.py"])
        self.assertEqual(recent.recent(2), ["a.py", "c.py"])
        self.assertEqual(len(recent), 3)

    def test_capped_at_limit(self):
        recent = RecentFiles()
        for idx in range(25):
            recent.touch(f"file{idx}.py")

        self.assertEqual(len(recent), 20)
        self.assertEqual(recent.recent(1), ["file24.py"])
        self.assertNotIn("file4.py", recent.recent())
        self.assertIn("file5.py", recent.recent())

    def test_clear_and_invalid_limit(self):
        recent = RecentFiles(limit=2)
        recent.touch("a.py")
        recent.clear()
        self.assertEqual(recent.recent(), [])

        with self.assertRaises(ValueError):
            RecentFiles(limit=0)


class DebouncerTests(unittest.IsolatedAsyncioTestCase):
    async def test_runs_once_after_last_schedule(self):
        calls = []

        async def callback():
            calls.append(asyncio.get_running_loop().time())

        debouncer = Debouncer(0.03, callback)
        for _ in range(3):
            debouncer.schedule()
            await asyncio.sleep(0.01)
        self.assertEqual(calls, [])
        self.assertTrue(debouncer.pending)

        await asyncio.sleep(0.08)
        self.assertEqual(len(calls), 1)
        self.assertFalse(debouncer.pending)

    async def test_cancel_prevents_run(self):
        calls = []

        async def callback():
            calls.append(1)

        debouncer = Debouncer(0.02, callback)
        debouncer.schedule()
        debouncer.cancel()
        await asyncio.sleep(0.05)

        self.assertEqual(calls, [])
        self.assertFalse(debouncer.pending)

    async def test_callback_errors_are_contained(self):
        async def callback():
            raise RuntimeError("boom")

        debouncer = Debouncer(0.01, callback)
        debouncer.schedule()
        await asyncio.sleep(0.05)

        self.assertFalse(debouncer.pending)


class DebouncerWithoutLoopTests(unittest.TestCase):
    def test_schedule_outside_loop_is_skipped(self):
        calls = []

        async def callback():
            calls.append(1)

        debouncer = Debouncer(0.01, callback)
        debouncer.schedule()

        self.assertFalse(debouncer.pending)
        self.assertEqual(calls, [])


if __name__ == "__main__":
    unittest.main()
