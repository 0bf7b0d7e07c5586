import asyncio
import unittest

from chat_test_util import RecordingRenderer
from webim_client.frames import Role
from webim_client.history import HistorySync
from webim_client.http_api import HistoryError
from webim_client.session import ChatMessage, Session


def _messages(count: int, peer: str = "T"):
    return [ChatMessage(from_id=peer if i % 2 else "me", to_id="me" if i % 2 else peer, content=f"m{i}") for i in range(count)]


class HistorySyncTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.session = Session(local_id="me", role=Role.USER, target_id="T")
        self.renderer = RecordingRenderer()
        self.calls = []
        self.stored = _messages(3)

    async def _fetch(self, local_id, target_id):
        self.calls.append((local_id, target_id))
        return list(self.stored)

    def _sync(self, **kwargs) -> HistorySync:
        return HistorySync(self.session, kwargs.pop("fetch", self._fetch), self.renderer, **kwargs)

    async def test_repeated_refresh_replaces_transcript_each_time(self):
        sync = self._sync()

        self.assertTrue(await sync.refresh("me", "T"))
        self.assertTrue(await sync.refresh("me", "T"))

        self.assertEqual(self.calls, [("me", "T"), ("me", "T")])
        self.assertEqual(len(self.renderer.transcripts), 2)
        self.assertEqual(self.renderer.transcripts[0], self.renderer.transcripts[1])
        self.assertEqual([m.content for m in self.renderer.transcripts[-1]], ["m0", "m1", "m2"])

    async def test_absent_target_is_a_no_op(self):
        sync = self._sync()

        self.assertFalse(await sync.refresh("me", None))

        self.assertEqual(self.calls, [])
        self.assertEqual(self.renderer.transcripts, [])

    async def test_window_keeps_most_recent_entries_oldest_first(self):
        self.stored = _messages(8)
        sync = self._sync(limit=5)

        await sync.refresh("me", "T")

        self.assertEqual([m.content for m in self.renderer.transcripts[0]], ["m3", "m4", "m5", "m6", "m7"])

    async def test_result_for_ended_session_is_discarded(self):
        release = asyncio.Event()

        async def slow_fetch(local_id, target_id):
            await release.wait()
            return list(self.stored)

        sync = self._sync(fetch=slow_fetch)
        task = sync.trigger("me", "T")
        await asyncio.sleep(0)
        self.session.end()
        release.set()

        self.assertFalse(await task)
        self.assertEqual(self.renderer.transcripts, [])

    async def test_result_for_previous_target_is_discarded(self):
        release = asyncio.Event()

        async def slow_fetch(local_id, target_id):
            await release.wait()
            return list(self.stored)

        sync = self._sync(fetch=slow_fetch)
        task = sync.trigger("me", "T")
        await asyncio.sleep(0)
        self.session.target_id = "U"
        release.set()

        self.assertFalse(await task)
        self.assertEqual(self.renderer.transcripts, [])

    async def test_fetch_failure_leaves_transcript_untouched(self):
        async def failing_fetch(local_id, target_id):
            raise HistoryError("boom")

        sync = self._sync(fetch=failing_fetch)
        with self.assertLogs("webim_client.history", level="WARNING"):
            self.assertFalse(await sync.refresh("me", "T"))
        self.assertEqual(self.renderer.transcripts, [])

    async def test_renderer_failure_in_background_refresh_is_logged(self):
        def broken_replace(messages):
            raise RuntimeError("renderer exploded")

        self.renderer.replace_transcript = broken_replace
        sync = self._sync()

        with self.assertLogs("webim_client.history", level="ERROR"):
            task = sync.trigger("me", "T")
            await sync.drain()

        self.assertFalse(task.result())

    async def test_drain_waits_for_triggered_refreshes(self):
        sync = self._sync()

        sync.trigger("me", "T")
        sync.trigger("me", "T")
        await sync.drain()

        self.assertEqual(len(self.renderer.transcripts), 2)


if __name__ == "__main__":
    unittest.main()
