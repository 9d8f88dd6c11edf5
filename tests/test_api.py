"""
API Layer Tests

Tests for voice and job endpoints.
"""
import pytest
import pytest_asyncio

from narrator.models.job import ConversionJob, JobStatus
from narrator.models.voice_config import VoiceConfig
from narrator.services.job_processor import ConversionTask

ARTICLE = {
    'id': 'article-1',
    'title': 'Breaking News',
    'content': '<p>Short update.</p>',
    'user_id': 'user-1',
}


@pytest_asyncio.fixture
async def stored_voice_config(test_session):
    config = VoiceConfig(
        id='voice-1',
        name='Morning',
        language_code='vi-VN',
        voice_name='vi-VN-Wavenet-B',
        audio_encoding='WAV',
        sample_rate_hertz=16000,
    )
    test_session.add(config)
    await test_session.commit()
    return config


class TestVoiceEndpoints:
    """Tests for /voices endpoints."""

    @pytest.mark.asyncio
    async def test_list_voices(self, client, mock_tts_provider):
        """Test GET /voices returns the provider catalog."""
        response = await client.get('/voices', params={'language_code': 'vi-VN'})

        assert response.status_code == 200
        data = response.json()
        assert data['language_code'] == 'vi-VN'
        assert [v['name'] for v in data['voices']] == ['vi-VN-Standard-A', 'vi-VN-Wavenet-B']
        assert data['voices'][0]['ssml_gender'] == 'FEMALE'
        mock_tts_provider.list_voices.assert_awaited_once_with('vi-VN')

    @pytest.mark.asyncio
    async def test_list_voices_defaults_language(self, client, mock_tts_provider):
        response = await client.get('/voices')

        assert response.status_code == 200
        mock_tts_provider.list_voices.assert_awaited_once_with('vi-VN')

    @pytest.mark.asyncio
    async def test_invalid_language_code_returns_422(self, client):
        response = await client.get('/voices', params={'language_code': 'english'})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_provider_failure_returns_502(self, client, mock_tts_provider):
        mock_tts_provider.list_voices.side_effect = RuntimeError('Connection refused')

        response = await client.get('/voices')

        assert response.status_code == 502


class TestConvertEndpoints:
    """Tests for conversion endpoints."""

    @pytest.mark.asyncio
    async def test_convert_now(self, client, mock_tts_provider):
        """Test POST /jobs/convert returns the completed job."""
        response = await client.post('/jobs/convert', json={'article': ARTICLE})

        assert response.status_code == 201
        data = response.json()
        assert data['status'] == 'completed'
        assert data['article_id'] == 'article-1'
        assert data['title'] == 'Breaking News'
        assert data['file_name'].endswith('.mp3')
        assert data['file_path'] is not None
        assert data['error_code'] is None
        mock_tts_provider.synthesize.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_convert_now_failure_returns_502(self, client, mock_tts_provider, job_store):
        mock_tts_provider.synthesize.side_effect = Exception('Quota exceeded for project')

        response = await client.post('/jobs/convert', json={'article': ARTICLE})

        assert response.status_code == 502
        detail = response.json()['detail']
        assert detail['error_code'] == 'QUOTA_EXCEEDED'
        assert detail['error_message'] == 'Quota exceeded for project'

        job = await job_store.find_by_id(detail['job_id'])
        assert job.status == JobStatus.failed.value

    @pytest.mark.asyncio
    async def test_convert_with_voice_config(self, client, mock_tts_provider, stored_voice_config):
        response = await client.post(
            '/jobs/convert',
            json={'article': ARTICLE, 'voice_config_id': 'voice-1'},
        )

        assert response.status_code == 201
        data = response.json()
        assert data['voice_config_id'] == 'voice-1'
        assert data['file_name'].endswith('.wav')
        settings = mock_tts_provider.synthesize.call_args.args[1]
        assert settings.voice_name == 'vi-VN-Wavenet-B'
        mock_tts_provider.validate_voice_settings.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_voice_config_returns_404(self, client, mock_tts_provider):
        response = await client.post(
            '/jobs/convert',
            json={'article': ARTICLE, 'voice_config_id': 'missing'},
        )

        assert response.status_code == 404
        mock_tts_provider.synthesize.assert_not_called()

    @pytest.mark.asyncio
    async def test_unavailable_voice_returns_422(self, client, mock_tts_provider, stored_voice_config, job_store):
        mock_tts_provider.validate_voice_settings.return_value = False

        response = await client.post(
            '/jobs/convert',
            json={'article': ARTICLE, 'voice_config_id': 'voice-1'},
        )

        assert response.status_code == 422
        _, total = await job_store.list_by_article('article-1')
        assert total == 0

    @pytest.mark.asyncio
    async def test_missing_article_returns_422(self, client):
        response = await client.post('/jobs/convert', json={})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_empty_article_id_returns_422(self, client):
        response = await client.post('/jobs/convert', json={'article': {'id': '', 'content': ''}})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_convert_async_returns_pending_job(self, client, mock_job_processor, mock_tts_provider, job_store):
        """Test POST /jobs/convert-async queues the article and returns immediately."""
        response = await client.post('/jobs/convert-async', json={'article': ARTICLE})

        assert response.status_code == 202
        data = response.json()
        assert data['status'] == 'pending'
        assert data['retry_count'] == 0

        saved = await job_store.find_by_id(data['id'])
        assert saved.status == JobStatus.pending.value

        mock_job_processor.enqueue.assert_awaited_once()
        task = mock_job_processor.enqueue.call_args.args[0]
        assert isinstance(task, ConversionTask)
        assert task.article.id == 'article-1'
        assert task.voice_config is None
        mock_tts_provider.synthesize.assert_not_called()

    @pytest.mark.asyncio
    async def test_convert_async_unknown_voice_config(self, client, mock_job_processor):
        response = await client.post(
            '/jobs/convert-async',
            json={'article': ARTICLE, 'voice_config_id': 'missing'},
        )

        assert response.status_code == 404
        mock_job_processor.enqueue.assert_not_called()


class TestJobEndpoints:
    """Tests for job query endpoints."""

    @pytest.mark.asyncio
    async def test_get_job(self, client, service, article):
        job = await service.create_pending_job(article)

        response = await client.get(f'/jobs/{job.id}')

        assert response.status_code == 200
        data = response.json()
        assert data['id'] == job.id
        assert data['status'] == 'pending'
        assert 'created_at' in data
        assert 'updated_at' in data

    @pytest.mark.asyncio
    async def test_invalid_job_id_returns_404(self, client):
        response = await client.get('/jobs/nonexistent-job-id')

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_jobs_for_article(self, client, service, article):
        for _ in range(3):
            await service.create_pending_job(article)

        response = await client.get('/jobs', params={'article_id': 'article-1', 'limit': 2})

        assert response.status_code == 200
        data = response.json()
        assert data['total'] == 3
        assert data['limit'] == 2
        assert data['offset'] == 0
        assert len(data['jobs']) == 2

    @pytest.mark.asyncio
    async def test_list_jobs_requires_article(self, client):
        response = await client.get('/jobs')

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_get_audio(self, client):
        response = await client.post('/jobs/convert', json={'article': ARTICLE})
        job_id = response.json()['id']

        response = await client.get(f'/jobs/{job_id}/audio')

        assert response.status_code == 200
        assert response.headers['content-type'] == 'audio/mpeg'
        assert response.content == b'ID3-short-audio'

    @pytest.mark.asyncio
    async def test_audio_not_ready(self, client, service, article):
        job = await service.create_pending_job(article)

        response = await client.get(f'/jobs/{job.id}/audio')

        assert response.status_code == 404
        assert 'not ready' in response.json()['detail']

    @pytest.mark.asyncio
    async def test_remote_audio_is_not_streamed(self, client, job_store):
        job = await job_store.save(ConversionJob(
            article_id='article-1',
            status=JobStatus.completed.value,
            file_name='article_audio_1.mp3',
            file_path='gs://audio-bucket/audio/article-1/article_audio_1.mp3',
        ))

        response = await client.get(f'/jobs/{job.id}/audio')

        assert response.status_code == 404


class TestOpenAPI:

    @pytest.mark.asyncio
    async def test_openapi_schema_available(self, client):
        response = await client.get('/openapi.json')

        assert response.status_code == 200
        paths = response.json()['paths']
        assert '/jobs/convert' in paths
        assert '/jobs/convert-async' in paths
        assert '/voices' in paths
