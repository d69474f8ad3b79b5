"""
防抖与自动保存测试
"""

import asyncio

import pytest

from app.core.debounce import DebouncedTask
from app.schemas.note import NoteData

from app.tests.fakes import TEST_USER_ID


class TestDebouncedTask:

    @pytest.mark.asyncio
    async def test_repeated_schedules_coalesce(self):
        calls = []

        async def record(value):
            calls.append(value)

        debouncer = DebouncedTask(0.05)
        for value in range(5):
            debouncer.schedule("key", record, value)
        assert debouncer.pending("key")

        await asyncio.sleep(0.15)

        assert calls == [4]
        assert not debouncer.pending("key")

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        calls = []

        async def record(value):
            calls.append(value)

        debouncer = DebouncedTask(0.05)
        debouncer.schedule("a", record, "a")
        debouncer.schedule("b", record, "b")
        await asyncio.sleep(0.15)

        assert sorted(calls) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_cancel(self):
        calls = []

        async def record():
            calls.append(1)

        debouncer = DebouncedTask(0.05)
        debouncer.schedule("key", record)
        assert debouncer.cancel("key") is True
        assert debouncer.cancel("key") is False
        await asyncio.sleep(0.1)

        assert calls == []

    @pytest.mark.asyncio
    async def test_flush_runs_immediately(self):
        calls = []

        async def record():
            calls.append(1)

        debouncer = DebouncedTask(10)
        debouncer.schedule("key", record)

        assert await debouncer.flush("key") is True
        assert calls == [1]
        assert await debouncer.flush("key") is False

    @pytest.mark.asyncio
    async def test_failed_call_does_not_break_scheduler(self):
        calls = []

        async def fail():
            raise RuntimeError("boom")

        async def record():
            calls.append(1)

        debouncer = DebouncedTask(0.01)
        debouncer.schedule("key", fail)
        await asyncio.sleep(0.05)
        debouncer.schedule("key", record)
        await asyncio.sleep(0.05)

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_flush_all_waits_for_running_call(self):
        started = asyncio.Event()
        finished = []

        async def slow_save():
            started.set()
            await asyncio.sleep(0.05)
            finished.append(1)

        debouncer = DebouncedTask(0.01)
        debouncer.schedule("key", slow_save)
        await started.wait()
        assert not debouncer.pending("key")
        assert debouncer.running() == 1

        await debouncer.flush_all()

        assert finished == [1]
        assert debouncer.running() == 0


class TestNoteAutosaver:

    @pytest.mark.asyncio
    async def test_changes_merge_into_one_save(self, autosaver, note_service):
        note_id = await note_service.save_note(TEST_USER_ID, NoteData(title="Draft", summary="v0"))

        autosaver.schedule(TEST_USER_ID, note_id, {"summary": "v1"})
        autosaver.schedule(TEST_USER_ID, note_id, {"transcription": "typed transcript"})
        autosaver.schedule(TEST_USER_ID, note_id, {"summary": "v2"})
        assert autosaver.pending(TEST_USER_ID, note_id)

        await asyncio.sleep(0.2)

        note = await note_service.get_note(TEST_USER_ID, note_id)
        assert note.summary == "v2"
        assert note.transcription == "typed transcript"
        assert not autosaver.pending(TEST_USER_ID, note_id)

    @pytest.mark.asyncio
    async def test_flush_all(self, note_service):
        from app.services.note import NoteAutosaver

        autosaver = NoteAutosaver(note_service, delay=10)
        note_id = await note_service.save_note(TEST_USER_ID, NoteData(title="Draft"))
        autosaver.schedule(TEST_USER_ID, note_id, {"summary": "saved on shutdown"})

        await autosaver.flush_all()

        assert (await note_service.get_note(TEST_USER_ID, note_id)).summary == "saved on shutdown"

    @pytest.mark.asyncio
    async def test_cancel_drops_changes(self, autosaver, note_service):
        note_id = await note_service.save_note(TEST_USER_ID, NoteData(title="Draft", summary="kept"))
        autosaver.schedule(TEST_USER_ID, note_id, {"summary": "discarded"})

        assert autosaver.cancel(TEST_USER_ID, note_id) is True
        await asyncio.sleep(0.1)

        assert (await note_service.get_note(TEST_USER_ID, note_id)).summary == "kept"
