"""
API端点测试
"""

import asyncio

import numpy as np
import pytest

from app.core.exceptions import AIServiceException
from app.models.legacy_note import LegacyNote
from app.utils.audio_utils import encode_wav

from app.tests.fakes import TEST_USER_ID, LECTURE_TRANSCRIPT


def wav_upload(name="lecture.wav"):
    data = encode_wav(np.zeros((800, 1), dtype=np.float32), 16000, 1)
    return {"audio": (name, data, "audio/wav")}


class TestHealth:

    @pytest.mark.asyncio
    async def test_root_and_health(self, client):
        assert (await client.get("/")).status_code == 200
        response = await client.get("/health")
        assert response.json()["status"] == "healthy"


class TestAuth:

    @pytest.mark.asyncio
    async def test_requires_token(self, client):
        response = await client.get("/api/v1/notes/")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_rejects_bad_token(self, client):
        response = await client.get("/api/v1/notes/", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401


class TestNotesAPI:

    async def create_note(self, client, headers, **payload):
        response = await client.post("/api/v1/notes/", json=payload, headers=headers)
        assert response.status_code == 201
        return response.json()["data"]["id"]

    @pytest.mark.asyncio
    async def test_create_get_list_delete(self, client, auth_headers):
        note_id = await self.create_note(client, auth_headers, title="Week 1")

        response = await client.get(f"/api/v1/notes/{note_id}", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Week 1"
        assert data["summary"] == "No content yet"

        listing = (await client.get("/api/v1/notes/", headers=auth_headers)).json()["data"]
        assert [n["id"] for n in listing] == [note_id]
        assert listing[0]["preview"] == "No content yet"

        response = await client.delete(f"/api/v1/notes/{note_id}", headers=auth_headers)
        assert response.status_code == 200
        response = await client.get(f"/api/v1/notes/{note_id}", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "RESOURCE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_notes_are_private(self, client, auth_headers, other_auth_headers):
        note_id = await self.create_note(client, auth_headers, title="Mine")

        assert (await client.get(f"/api/v1/notes/{note_id}", headers=other_auth_headers)).status_code == 404
        assert (await client.get("/api/v1/notes/", headers=other_auth_headers)).json()["data"] == []

        response = await client.put(
            "/api/v1/notes/save",
            json={"id": note_id, "title": "Hijacked"},
            headers=other_auth_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_save_full_note(self, client, auth_headers):
        response = await client.put(
            "/api/v1/notes/save",
            json={
                "title": "Typed notes",
                "transcription": LECTURE_TRANSCRIPT,
                "summary": "## Topic\nDetails",
                "structuredSummary": {"summary": "", "keyPoints": [], "sections": []}
            },
            headers=auth_headers
        )
        assert response.status_code == 200
        note_id = response.json()["data"]["id"]

        data = (await client.get(f"/api/v1/notes/{note_id}", headers=auth_headers)).json()["data"]
        assert data["transcription"] == LECTURE_TRANSCRIPT
        assert data["structuredSummary"]["keyPoints"] == []

    @pytest.mark.asyncio
    async def test_update_title_and_content(self, client, auth_headers):
        note_id = await self.create_note(client, auth_headers)

        response = await client.patch(
            f"/api/v1/notes/{note_id}/title", json={"title": "Renamed"}, headers=auth_headers
        )
        assert response.json()["data"]["title"] == "Renamed"

        response = await client.put(
            f"/api/v1/notes/{note_id}/content",
            json={"summary": "Edited summary"},
            headers=auth_headers
        )
        data = response.json()["data"]
        assert data["summary"] == "Edited summary"
        assert data["title"] == "Renamed"

    @pytest.mark.asyncio
    async def test_autosave_is_deferred(self, client, auth_headers, note_service):
        note_id = await self.create_note(client, auth_headers)

        response = await client.put(
            f"/api/v1/notes/{note_id}/content",
            json={"summary": "typing...", "autosave": True},
            headers=auth_headers
        )
        assert response.status_code == 202
        assert (await note_service.get_note(TEST_USER_ID, note_id)).summary == "No content yet"

        await asyncio.sleep(0.2)
        assert (await note_service.get_note(TEST_USER_ID, note_id)).summary == "typing..."

    @pytest.mark.asyncio
    async def test_null_content_fields_are_ignored(self, client, auth_headers, note_service):
        note_id = await self.create_note(client, auth_headers)

        response = await client.put(
            f"/api/v1/notes/{note_id}/content",
            json={"transcription": None, "summary": "Edited"},
            headers=auth_headers
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["transcription"] == ""
        assert data["summary"] == "Edited"

    @pytest.mark.asyncio
    async def test_null_content_fields_with_autosave(self, client, auth_headers, note_service):
        note_id = await self.create_note(client, auth_headers)

        response = await client.put(
            f"/api/v1/notes/{note_id}/content",
            json={"transcription": None, "summary": None, "rawSummary": "draft", "autosave": True},
            headers=auth_headers
        )
        assert response.status_code == 202

        await asyncio.sleep(0.2)
        note = await note_service.get_note(TEST_USER_ID, note_id)
        assert note.raw_summary == "draft"
        assert note.summary == "No content yet"
        assert note.transcription == ""

    @pytest.mark.asyncio
    async def test_discard_and_regenerate(self, client, auth_headers, fake_ai):
        response = await client.put(
            "/api/v1/notes/save",
            json={"title": "Lecture", "transcription": LECTURE_TRANSCRIPT, "summary": "Old notes"},
            headers=auth_headers
        )
        note_id = response.json()["data"]["id"]

        data = (await client.post(f"/api/v1/notes/{note_id}/discard-ai", headers=auth_headers)).json()["data"]
        assert data["summary"] == ""
        assert data["transcription"] == LECTURE_TRANSCRIPT

        response = await client.post(f"/api/v1/notes/{note_id}/regenerate", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["transcription"] == LECTURE_TRANSCRIPT
        assert fake_ai.text_calls == [LECTURE_TRANSCRIPT]

    @pytest.mark.asyncio
    async def test_move_note_to_folder(self, client, auth_headers):
        note_id = await self.create_note(client, auth_headers)
        folder = await client.post("/api/v1/folders/", json={"name": "Physics"}, headers=auth_headers)
        folder_id = folder.json()["data"]["id"]

        response = await client.put(
            f"/api/v1/notes/{note_id}/folder", json={"folderId": folder_id}, headers=auth_headers
        )
        assert response.status_code == 200

        tree = (await client.get("/api/v1/folders/tree", headers=auth_headers)).json()["data"]
        assert tree[0]["type"] == "folder"
        assert tree[0]["children"][0]["id"] == note_id


class TestFoldersAPI:

    async def create_folder(self, client, headers, name, parent_id=None):
        response = await client.post(
            "/api/v1/folders/", json={"name": name, "parentId": parent_id}, headers=headers
        )
        assert response.status_code == 201
        return response.json()["data"]["id"]

    @pytest.mark.asyncio
    async def test_folder_lifecycle(self, client, auth_headers):
        parent = await self.create_folder(client, auth_headers, "Semester")
        child = await self.create_folder(client, auth_headers, "Week 1", parent)

        response = await client.patch(
            f"/api/v1/folders/{child}", json={"name": "Week One"}, headers=auth_headers
        )
        assert response.status_code == 200

        folders = (await client.get("/api/v1/folders/", headers=auth_headers)).json()["data"]
        assert {f["name"] for f in folders} == {"Semester", "Week One"}

        response = await client.delete(f"/api/v1/folders/{parent}", headers=auth_headers)
        assert sorted(response.json()["data"]["deleted"]) == sorted([parent, child])
        assert (await client.get("/api/v1/folders/", headers=auth_headers)).json()["data"] == []

    @pytest.mark.asyncio
    async def test_cycle_is_rejected(self, client, auth_headers):
        parent = await self.create_folder(client, auth_headers, "Parent")
        child = await self.create_folder(client, auth_headers, "Child", parent)

        response = await client.put(
            f"/api/v1/folders/{parent}/parent", json={"parentId": child}, headers=auth_headers
        )
        assert response.status_code == 400

        response = await client.put(
            f"/api/v1/folders/{child}/parent", json={"parentId": None}, headers=auth_headers
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_unknown_folder(self, client, auth_headers):
        response = await client.patch("/api/v1/folders/missing", json={"name": "x"}, headers=auth_headers)
        assert response.status_code == 404


class TestAudioAPI:

    @pytest.mark.asyncio
    async def test_upload(self, client, auth_headers):
        response = await client.post("/api/v1/audio/upload", files=wav_upload(), headers=auth_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["path"].startswith(f"temp_audio/{TEST_USER_ID}/")
        assert (await client.head(data["url"])).status_code == 200

    @pytest.mark.asyncio
    async def test_process_creates_note(self, client, auth_headers):
        response = await client.post(
            "/api/v1/audio/process",
            files=wav_upload(),
            data={"title": "Recorded lecture"},
            headers=auth_headers
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Recorded lecture"
        assert data["result"]["transcription"] == LECTURE_TRANSCRIPT

        note = (await client.get(f"/api/v1/notes/{data['note_id']}", headers=auth_headers)).json()["data"]
        assert note["title"] == "Recorded lecture"
        assert note["audioUrl"].endswith("/audio.wav")

    @pytest.mark.asyncio
    async def test_process_failure_reports_error(self, client, auth_headers, fake_ai):
        fake_ai.error = AIServiceException("model unavailable")

        response = await client.post("/api/v1/audio/process", files=wav_upload(), headers=auth_headers)

        assert response.status_code == 502
        assert response.json()["message"] == "model unavailable"
        assert (await client.get("/api/v1/notes/", headers=auth_headers)).json()["data"] == []

    @pytest.mark.asyncio
    async def test_transcribe_only(self, client, auth_headers):
        response = await client.post("/api/v1/audio/transcribe", files=wav_upload(), headers=auth_headers)
        assert response.json() == {"transcription": LECTURE_TRANSCRIPT}


class TestSummarizeAPI:

    @pytest.mark.asyncio
    async def test_text_mode(self, client, auth_headers):
        response = await client.post(
            "/api/v1/summarize-audio", json={"audioText": LECTURE_TRANSCRIPT}, headers=auth_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["transcription"] == LECTURE_TRANSCRIPT
        assert set(data) == {"transcription", "summary", "rawSummary", "structuredSummary"}

    @pytest.mark.asyncio
    async def test_audio_mode(self, client, auth_headers):
        upload = await client.post("/api/v1/audio/upload", files=wav_upload(), headers=auth_headers)
        url = upload.json()["data"]["url"]

        response = await client.post(
            "/api/v1/summarize-audio",
            json={"audioUrl": url, "contentType": "audio/wav"},
            headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["structuredSummary"]["keyPoints"] == ["Light reactions", "Calvin cycle"]

    @pytest.mark.asyncio
    async def test_missing_input_returns_error(self, client, auth_headers):
        response = await client.post("/api/v1/summarize-audio", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Either audioUrl or audioText is required"}

    @pytest.mark.asyncio
    async def test_download_failure_returns_error(self, client, auth_headers):
        response = await client.post(
            "/api/v1/summarize-audio",
            json={"audioUrl": "http://test/files/audio_uploads/missing.wav"},
            headers=auth_headers
        )
        assert response.status_code == 422
        assert response.json()["error"].startswith("Failed to download audio")


class TestMigrationAPI:

    @pytest.mark.asyncio
    async def test_migrate(self, client, auth_headers, session_factory):
        async with session_factory() as session:
            session.add(LegacyNote(id="legacy-1", user_id=TEST_USER_ID, title="Old", content="Body"))
            await session.commit()

        response = await client.post("/api/v1/migrate", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"] == {"success": True, "count": 1, "errors": []}

        note = (await client.get("/api/v1/notes/legacy-1", headers=auth_headers)).json()["data"]
        assert note["summary"] == "Body"
