"""
Pytest fixtures for testing.
"""
from typing import AsyncGenerator
from unittest.mock import MagicMock, AsyncMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from narrator.models import Base
from narrator.schemas.article import Article
from narrator.services.audio_storage import LocalAudioStorage, reset_audio_storage
from narrator.services.conversion_service import (
    ArticleToAudioService,
    get_conversion_service,
    reset_conversion_service,
)
from narrator.services.job_processor import JobProcessor, get_job_processor, reset_job_processor
from narrator.services.job_store import JobStore
from narrator.services.tts_provider import (
    GoogleTtsProvider,
    LongAudioOperation,
    Voice,
    get_tts_provider,
)


@pytest.fixture(scope='function')
def test_db_url(tmp_path):
    """Per-test SQLite database file."""
    return f'sqlite+aiosqlite:///{tmp_path / "test.db"}'


@pytest_asyncio.fixture(scope='function')
async def test_engine(test_db_url):
    """Create a test database engine."""
    engine = create_async_engine(test_db_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope='function')
async def test_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def job_store(session_factory):
    return JobStore(session_factory)


@pytest.fixture
def audio_dir(tmp_path):
    audio = tmp_path / 'audio'
    audio.mkdir()
    return audio


@pytest.fixture
def audio_storage(audio_dir):
    return LocalAudioStorage(audio_dir)


@pytest.fixture
def mock_tts_provider():
    """Create a mock TTS provider for testing."""
    provider = MagicMock(spec=GoogleTtsProvider)
    provider.supports_long_audio = True
    provider.synthesize = AsyncMock(return_value=b'ID3-short-audio')
    provider.synthesize_text_in_chunks = AsyncMock(return_value=b'ID3-chunked-audio')
    provider.synthesize_long_text = AsyncMock(return_value=b'RIFF-long-audio')
    provider.check_operation = AsyncMock(
        return_value=LongAudioOperation(name='operations/1', done=False)
    )
    provider.fetch_output = AsyncMock(return_value=b'RIFF-fetched-audio')
    provider.list_voices = AsyncMock(return_value=[
        Voice('vi-VN-Standard-A', ['vi-VN'], 'FEMALE', 24000),
        Voice('vi-VN-Wavenet-B', ['vi-VN'], 'MALE', 24000),
    ])
    provider.validate_voice_settings = AsyncMock(return_value=True)
    return provider


@pytest.fixture
def service(job_store, mock_tts_provider, audio_storage):
    return ArticleToAudioService(job_store, mock_tts_provider, audio_storage)


@pytest.fixture
def article():
    return Article(
        id='article-1',
        title='Breaking News',
        content='<p>Short update.</p>',
        user_id='user-1',
    )


@pytest.fixture
def long_article():
    paragraphs = ''.join(f'<p>{"x" * 99}{i % 10}</p>' for i in range(200))
    return Article(id='article-long', title='Long Read', content=paragraphs)


@pytest.fixture
def mock_job_processor():
    """Worker pool stand-in that records enqueued tasks."""
    processor = MagicMock(spec=JobProcessor)
    processor.is_running = True
    processor.worker_count = 2
    processor.pending_count = 0
    processor.enqueue = AsyncMock()
    return processor


@pytest_asyncio.fixture
async def client(service, mock_tts_provider, mock_job_processor):
    """Create a test client with mocked dependencies."""
    # Reset singletons
    reset_conversion_service()
    reset_job_processor()
    reset_audio_storage()

    # Import app after resetting singletons
    from server import app

    app.dependency_overrides[get_conversion_service] = lambda: service
    app.dependency_overrides[get_tts_provider] = lambda: mock_tts_provider
    app.dependency_overrides[get_job_processor] = lambda: mock_job_processor

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as client:
        yield client

    # Clean up
    app.dependency_overrides.clear()
    reset_conversion_service()
    reset_job_processor()
    reset_audio_storage()
