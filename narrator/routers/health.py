"""
Health check endpoint.
"""
from pydantic import BaseModel
from fastapi import APIRouter, Depends

from narrator.config import APP_VERSION, STORAGE_BACKEND
from narrator.services.job_processor import JobProcessor, get_job_processor
from narrator.services.tts_provider import GoogleTtsProvider, get_tts_provider


router = APIRouter(tags=['health'])


class HealthResponse(BaseModel):
    """Health check response schema."""
    status: str
    version: str
    long_audio_available: bool
    storage_backend: str
    workers_running: bool
    worker_count: int
    queued_conversions: int


@router.get('/health', response_model=HealthResponse)
async def health_check(
    tts: GoogleTtsProvider = Depends(get_tts_provider),
    processor: JobProcessor = Depends(get_job_processor),
) -> HealthResponse:
    """
    Check server health status.

    Reports whether long audio synthesis is configured and the state of
    the background worker pool. Fast response - no database or provider calls.
    """
    return HealthResponse(
        status='ok',
        version=APP_VERSION,
        long_audio_available=tts.supports_long_audio,
        storage_backend=STORAGE_BACKEND,
        workers_running=processor.is_running,
        worker_count=processor.worker_count,
        queued_conversions=processor.pending_count,
    )
