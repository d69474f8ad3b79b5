"""
测试配置和fixtures
"""

import pytest
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.config import settings
from app.core.auth import create_access_token
from app.core.storage import StorageManager, get_storage_manager
from app.db.base import Base
from app.db.session import create_database_engine, create_session_factory
from app.services.audio import AudioTransportService, get_audio_transport_service
from app.services.folder import FolderService, get_folder_service
from app.services.migration import MigrationService, get_migration_service
from app.services.note import NoteService, NoteAutosaver, get_note_service, get_note_autosaver
from app.services.pipeline import AudioPipeline, get_audio_pipeline
from app.services.summarization import SummarizationGateway, get_summarization_gateway

from app import models  # noqa: F401
from app.tests.fakes import FakeAIService, TEST_USER_ID, OTHER_USER_ID


@pytest.fixture
async def engine():
    """每个测试独立的内存数据库"""
    engine = create_database_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def storage_manager(tmp_path) -> StorageManager:
    return StorageManager(
        backend="local",
        base_dir=str(tmp_path / "storage"),
        public_base_url="http://test"
    )


@pytest.fixture
def fake_ai() -> FakeAIService:
    return FakeAIService()


@pytest.fixture
async def files_client(storage_manager) -> AsyncGenerator[AsyncClient, None]:
    """访问本地存储文件端点的客户端"""
    app.dependency_overrides[get_storage_manager] = lambda: storage_manager
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.pop(get_storage_manager, None)


@pytest.fixture
def note_service(session_factory, storage_manager) -> NoteService:
    return NoteService(session_factory=session_factory, storage_manager=storage_manager)


@pytest.fixture
def folder_service(session_factory) -> FolderService:
    return FolderService(session_factory=session_factory)


@pytest.fixture
def migration_service(session_factory, note_service) -> MigrationService:
    return MigrationService(session_factory=session_factory, note_service=note_service)


@pytest.fixture
def transport(storage_manager, files_client) -> AudioTransportService:
    return AudioTransportService(
        storage=storage_manager.bucket(settings.uploads_bucket),
        http_client=files_client
    )


@pytest.fixture
def gateway(fake_ai, files_client) -> SummarizationGateway:
    return SummarizationGateway(
        ai_service=fake_ai,
        http_client=files_client,
        min_transcription_length=10
    )


@pytest.fixture
def pipeline(transport, gateway, note_service) -> AudioPipeline:
    return AudioPipeline(transport=transport, gateway=gateway, note_service=note_service)


@pytest.fixture
def autosaver(note_service) -> NoteAutosaver:
    return NoteAutosaver(note_service, delay=0.05)


@pytest.fixture
async def client(
    storage_manager,
    note_service,
    folder_service,
    migration_service,
    transport,
    gateway,
    pipeline,
    autosaver
) -> AsyncGenerator[AsyncClient, None]:
    """覆盖服务依赖的测试客户端"""
    app.dependency_overrides.update({
        get_storage_manager: lambda: storage_manager,
        get_note_service: lambda: note_service,
        get_folder_service: lambda: folder_service,
        get_migration_service: lambda: migration_service,
        get_audio_transport_service: lambda: transport,
        get_summarization_gateway: lambda: gateway,
        get_audio_pipeline: lambda: pipeline,
        get_note_autosaver: lambda: autosaver,
    })
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {create_access_token(TEST_USER_ID)}"}


@pytest.fixture
def other_auth_headers() -> dict:
    return {"Authorization": f"Bearer {create_access_token(OTHER_USER_ID)}"}
