"""
Job endpoints for article conversion.
"""
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse
from pydantic import ValidationError

from narrator.models.job import JobStatus
from narrator.models.voice_config import VoiceConfig
from narrator.schemas.job import ConvertRequest, JobResponse, JobListResponse
from narrator.services.audio_storage import content_type_for
from narrator.services.conversion_service import ArticleToAudioService, get_conversion_service
from narrator.services.errors import ConversionFailed
from narrator.services.job_processor import ConversionTask, JobProcessor, get_job_processor
from narrator.services.tts_provider import GoogleTtsProvider, get_tts_provider


router = APIRouter(prefix='/jobs', tags=['jobs'])


async def _load_voice_config(
    voice_config_id: Optional[str],
    service: ArticleToAudioService,
    tts: GoogleTtsProvider,
) -> Optional[VoiceConfig]:
    """Look up and vet a stored voice configuration before any job exists."""
    if voice_config_id is None:
        return None

    voice_config = await service.job_store.find_voice_config(voice_config_id)
    if not voice_config:
        raise HTTPException(status_code=404, detail=f'Voice configuration not found: {voice_config_id}')

    try:
        voice_settings = service.resolve_voice_settings(voice_config)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f'Invalid voice configuration: {e}')

    if not await tts.validate_voice_settings(voice_settings):
        raise HTTPException(
            status_code=422,
            detail=f'Voice {voice_settings.voice_name} is not available for {voice_settings.language_code}',
        )
    return voice_config


@router.post('/convert', response_model=JobResponse, status_code=201)
async def convert_now(
    request: ConvertRequest,
    service: ArticleToAudioService = Depends(get_conversion_service),
    tts: GoogleTtsProvider = Depends(get_tts_provider),
) -> JobResponse:
    """
    Convert an article and wait for the audio.

    Returns the completed job.

    Raises:
        404: Voice configuration not found
        422: Voice configuration rejected
        502: Synthesis or storage failed (the job is kept as failed)
    """
    voice_config = await _load_voice_config(request.voice_config_id, service, tts)

    try:
        job = await service.convert_synchronously(request.article, voice_config)
    except ConversionFailed as e:
        raise HTTPException(
            status_code=502,
            detail={
                'job_id': e.job_id,
                'error_code': e.error_code.value,
                'error_message': e.error_message,
            },
        )

    return JobResponse.model_validate(job)


@router.post('/convert-async', response_model=JobResponse, status_code=202)
async def convert_in_background(
    request: ConvertRequest,
    service: ArticleToAudioService = Depends(get_conversion_service),
    tts: GoogleTtsProvider = Depends(get_tts_provider),
    processor: JobProcessor = Depends(get_job_processor),
) -> JobResponse:
    """
    Queue an article for conversion.

    Returns immediately with the pending job; poll GET /jobs/{id} for the result.
    """
    voice_config = await _load_voice_config(request.voice_config_id, service, tts)

    job = await service.create_pending_job(request.article, voice_config)
    await processor.enqueue(ConversionTask(request.article, voice_config))

    return JobResponse.model_validate(job)


@router.get('', response_model=JobListResponse)
async def list_jobs(
    article_id: str = Query(..., min_length=1),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    service: ArticleToAudioService = Depends(get_conversion_service),
) -> JobListResponse:
    """
    List conversion jobs for an article.

    Returns jobs ordered by creation time (newest first).
    """
    jobs, total = await service.job_store.list_by_article(article_id, limit=limit, offset=offset)

    return JobListResponse(
        jobs=[JobResponse.model_validate(job) for job in jobs],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get('/{job_id}', response_model=JobResponse)
async def get_job(
    job_id: str,
    service: ArticleToAudioService = Depends(get_conversion_service),
) -> JobResponse:
    """
    Get details for a specific job.

    Returns job status, error details if failed and the file location if completed.
    """
    job = await service.job_store.find_by_id(job_id)

    if not job:
        raise HTTPException(status_code=404, detail=f'Job not found: {job_id}')

    return JobResponse.model_validate(job)


@router.get('/{job_id}/audio')
async def get_job_audio(
    job_id: str,
    service: ArticleToAudioService = Depends(get_conversion_service),
):
    """
    Stream the audio file for a completed job.

    Raises:
        404: Job not found, audio not ready, or audio not stored locally
    """
    job = await service.job_store.find_by_id(job_id)

    if not job:
        raise HTTPException(status_code=404, detail=f'Job not found: {job_id}')

    if job.status != JobStatus.completed.value:
        raise HTTPException(
            status_code=404,
            detail=f'Audio not ready. Job status: {job.status}'
        )

    if not job.file_path or job.file_path.startswith('gs://'):
        raise HTTPException(status_code=404, detail=f'Audio is not stored locally: {job.file_path}')

    if not Path(job.file_path).exists():
        raise HTTPException(status_code=404, detail='Audio file not found')

    return FileResponse(
        path=job.file_path,
        media_type=content_type_for(job.file_name),
        filename=job.file_name,
    )
