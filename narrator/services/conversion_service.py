"""
Article to audio conversion pipeline.

Each conversion is tracked by a ``ConversionJob`` row that moves through
``pending -> generating_audio -> completed``, or to ``failed`` from any
non-terminal state. SSML up to ``MAX_SSML_LENGTH`` characters goes through
the provider's synchronous call; longer articles are synthesized from their
plain text, with the long audio operation when it is configured and in
bounded chunks otherwise.
"""
import asyncio
import functools
import logging
import uuid
from datetime import datetime
from typing import Optional, Union

from narrator.config import MAX_SSML_LENGTH
from narrator.models.job import ConversionJob, JobStatus
from narrator.models.voice_config import VoiceConfig
from narrator.schemas.article import Article
from narrator.schemas.voice import AudioEncoding, VoiceSettings
from narrator.services.audio_storage import AudioStorage, get_audio_storage
from narrator.services.errors import (
    ConversionFailed,
    ErrorCode,
    InvalidStatusTransition,
    JobNotFound,
    SynthesisError,
    classify_error,
    error_message_of,
)
from narrator.services.job_store import JobStore
from narrator.services.ssml_converter import convert_to_ssml
from narrator.services.tts_provider import (
    GoogleTtsProvider,
    LongAudioOperation,
    LONG_AUDIO_ENCODING,
    get_tts_provider,
)

logger = logging.getLogger(__name__)

VoiceSource = Union[VoiceConfig, VoiceSettings, None]


def generate_audio_file_name(encoding: AudioEncoding) -> str:
    return f'article_audio_{uuid.uuid4()}.{encoding.file_extension}'


class ArticleToAudioService:
    """
    Owns conversion jobs and drives them through synthesis and storage.

    Failures are classified with ``classify_error`` and written to the job.
    The synchronous path re-raises them as ``ConversionFailed``; the
    background path records them, bumps ``retry_count`` and returns.
    """

    def __init__(
        self,
        job_store: JobStore,
        tts_provider: GoogleTtsProvider,
        audio_storage: AudioStorage,
        max_ssml_length: int = MAX_SSML_LENGTH,
    ):
        self.job_store = job_store
        self.tts_provider = tts_provider
        self.audio_storage = audio_storage
        self.max_ssml_length = max_ssml_length

    @staticmethod
    def resolve_voice_settings(voice_config: VoiceSource = None) -> VoiceSettings:
        """Voice settings from a stored configuration, or the defaults."""
        if isinstance(voice_config, VoiceSettings):
            return voice_config
        if voice_config is None:
            return VoiceSettings()
        return VoiceSettings(
            language_code=voice_config.language_code,
            voice_name=voice_config.voice_name,
            speaking_rate=voice_config.speaking_rate,
            pitch=voice_config.pitch,
            volume_gain_db=voice_config.volume_gain_db,
            audio_encoding=voice_config.audio_encoding,
            sample_rate_hertz=voice_config.sample_rate_hertz,
        )

    async def create_pending_job(self, article: Article,
                                 voice_config: VoiceSource = None) -> ConversionJob:
        """Persist a pending job before any provider call so it can be polled."""
        job = ConversionJob(
            article_id=article.id,
            user_id=article.user_id,
            voice_config_id=getattr(voice_config, 'id', None),
            title=article.title,
            status=JobStatus.pending.value,
            retry_count=0,
            created_by=article.user_id,
        )
        job = await self.job_store.save(job)
        logger.debug('Created pending job %s for article %s', job.id, article.id)
        return job

    async def update_status(self, job_id: str, status: JobStatus,
                            error_message: Optional[str] = None) -> ConversionJob:
        """
        Write a job status.

        Repeating the current status is a no-op write. Completing a job
        clears its error fields; failing it stores the message and the
        classified error code.

        Raises:
            JobNotFound: Unknown job id
            InvalidStatusTransition: The state machine forbids the move
        """
        job = await self.job_store.find_by_id(job_id)
        if job is None:
            raise JobNotFound(f'Job not found: {job_id}')

        current = JobStatus(job.status)
        target = JobStatus(status)
        if not current.can_transition_to(target):
            raise InvalidStatusTransition(job.id, current.value, target.value)

        job.status = target.value
        if target == JobStatus.failed:
            job.error_message = error_message or 'Unknown error'
            job.error_code = classify_error(error_message).value
        elif target == JobStatus.completed:
            job.error_message = None
            job.error_code = None
        else:
            job.error_message = error_message

        job = await self.job_store.save(job)
        logger.debug('Updated job %s status to %s', job_id, target.value)
        return job

    async def convert_synchronously(self, article: Article,
                                    voice_config: VoiceSource = None) -> ConversionJob:
        """
        Convert an article and wait for the result.

        Returns:
            The completed job

        Raises:
            ConversionFailed: Synthesis or storage failed; the job is marked failed
        """
        logger.info('Converting article %s to audio', article.id)

        voice_settings = self.resolve_voice_settings(voice_config)
        job = await self.create_pending_job(article, voice_config)

        try:
            await self.update_status(job.id, JobStatus.generating_audio)
            await self._perform_conversion(job.id, article, voice_settings)
            job = await self.update_status(job.id, JobStatus.completed)

            logger.info('Converted article %s to audio file: %s', article.id, job.file_name)
            return job

        except Exception as e:
            logger.error('Failed to convert article %s to audio: %s', article.id, e, exc_info=True)
            failed = await self._record_failure(job.id, e, count_retry=False)
            raise ConversionFailed(failed.id, ErrorCode(failed.error_code), failed.error_message) from e

    async def convert_in_background(self, article: Article,
                                    voice_config: VoiceSource = None) -> None:
        """
        Run the pipeline for the article's most recent job.

        Called from a background worker after ``create_pending_job``.
        Failures are recorded on the job and not raised. A failed job is
        re-opened and retried; a completed or in-flight job is left alone.

        Raises:
            JobNotFound: The article has no job
        """
        logger.info('Starting background audio conversion for article: %s', article.id)

        job = await self.job_store.find_latest_by_article(article.id)
        if job is None:
            raise JobNotFound(f'No conversion job for article {article.id}')

        status = JobStatus(job.status)
        if status == JobStatus.failed:
            logger.info('Retrying job %s after %d failed attempts', job.id, job.retry_count)
            job = await self._reopen(job)
        elif status != JobStatus.pending:
            logger.warning('Job %s is not pending (status: %s)', job.id, job.status)
            return

        try:
            await self.update_status(job.id, JobStatus.generating_audio)
            voice_settings = self.resolve_voice_settings(voice_config)
            await self._perform_conversion(job.id, article, voice_settings)
            await self.update_status(job.id, JobStatus.completed)

            logger.info('Completed background audio conversion for article: %s', article.id)

        except Exception as e:
            logger.error('Failed background audio conversion for article %s: %s',
                         article.id, e, exc_info=True)
            await self._record_failure(job.id, e, count_retry=True)

    async def reconcile_long_audio_jobs(self) -> int:
        """
        Settle jobs whose long audio operation outlived the process polling it.

        Finished operations are downloaded and their jobs completed; failed
        operations fail their jobs; running ones are left for a later sweep.

        Returns:
            Number of jobs moved to a terminal state
        """
        resolved = 0
        for job in await self.job_store.find_outstanding_operations():
            try:
                operation = await self.tts_provider.check_operation(job.operation_name, job.output_uri)
            except Exception as e:
                logger.warning('Could not check operation %s for job %s: %s',
                               job.operation_name, job.id, e)
                continue

            if not operation.done:
                continue

            try:
                if operation.failed:
                    raise SynthesisError(f'Long audio synthesis failed: {operation.error_message}')
                audio = await self.tts_provider.fetch_output(job.output_uri)
                await self._store_audio(job.id, audio, LONG_AUDIO_ENCODING)
                await self.update_status(job.id, JobStatus.completed)
                logger.info('Reconciled job %s from operation %s', job.id, job.operation_name)
            except Exception as e:
                logger.error('Reconciliation of job %s failed: %s', job.id, e, exc_info=True)
                await self._record_failure(job.id, e, count_retry=False)
            resolved += 1

        return resolved

    async def _perform_conversion(self, job_id: str, article: Article,
                                  voice_settings: VoiceSettings) -> ConversionJob:
        ssml = convert_to_ssml(article.content, article.title)

        if len(ssml) > self.max_ssml_length:
            if self.tts_provider.supports_long_audio:
                logger.info('Article content exceeds SSML limit (%d chars), using long audio synthesis',
                            len(ssml))
                audio = await self.tts_provider.synthesize_long_text(
                    article.plain_text,
                    voice_settings,
                    on_submitted=functools.partial(self._record_operation, job_id),
                )
                encoding = LONG_AUDIO_ENCODING
            else:
                logger.info('Article content exceeds SSML limit (%d chars), synthesizing plain text in chunks',
                            len(ssml))
                audio = await self.tts_provider.synthesize_text_in_chunks(article.plain_text, voice_settings)
                encoding = voice_settings.audio_encoding
        else:
            logger.info('Using SSML synthesis for article (%d chars)', len(ssml))
            audio = await self.tts_provider.synthesize(ssml, voice_settings)
            encoding = voice_settings.audio_encoding

        return await self._store_audio(job_id, audio, encoding)

    async def _store_audio(self, job_id: str, audio: bytes,
                           encoding: AudioEncoding) -> ConversionJob:
        job = await self.job_store.find_by_id(job_id)
        if job is None:
            raise JobNotFound(f'Job not found: {job_id}')

        job.file_name = generate_audio_file_name(encoding)

        loop = asyncio.get_running_loop()
        job.file_path = await loop.run_in_executor(None, self.audio_storage.store, job, audio)
        job.file_size_bytes = len(audio)
        job.published_at = datetime.utcnow()

        return await self.job_store.save(job)

    async def _record_operation(self, job_id: str, operation: LongAudioOperation):
        job = await self.job_store.find_by_id(job_id)
        if job is None:
            raise JobNotFound(f'Job not found: {job_id}')
        job.operation_name = operation.name
        job.output_uri = operation.output_uri
        await self.job_store.save(job)

    async def _record_failure(self, job_id: str, exc: BaseException,
                              count_retry: bool) -> ConversionJob:
        job = await self.update_status(job_id, JobStatus.failed, error_message_of(exc))
        if count_retry:
            job.retry_count = (job.retry_count or 0) + 1
            job = await self.job_store.save(job)
        return job

    async def _reopen(self, job: ConversionJob) -> ConversionJob:
        # Explicit retry: the only way out of a terminal state
        job.status = JobStatus.pending.value
        job.error_message = None
        job.error_code = None
        return await self.job_store.save(job)


# Singleton instance
_conversion_service: Optional[ArticleToAudioService] = None


def get_conversion_service() -> ArticleToAudioService:
    """Get the conversion service singleton instance."""
    global _conversion_service
    if _conversion_service is None:
        from narrator.database import async_session_factory
        _conversion_service = ArticleToAudioService(
            job_store=JobStore(async_session_factory),
            tts_provider=get_tts_provider(),
            audio_storage=get_audio_storage(),
        )
    return _conversion_service


def reset_conversion_service():
    """Reset the conversion service singleton (for testing)."""
    global _conversion_service
    _conversion_service = None
