"""
Voice catalog endpoints.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from narrator.config import DEFAULT_LANGUAGE_CODE
from narrator.services.tts_provider import GoogleTtsProvider, get_tts_provider
from narrator.schemas.voice import VoiceResponse, VoiceListResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/voices', tags=['voices'])


@router.get('', response_model=VoiceListResponse)
async def list_voices(
    language_code: str = Query(default=DEFAULT_LANGUAGE_CODE, pattern=r'^[a-z]{2}-[A-Z]{2}$'),
    tts: GoogleTtsProvider = Depends(get_tts_provider),
) -> VoiceListResponse:
    """
    List the provider's voices for a language.

    Raises:
        502: The provider could not be reached
    """
    try:
        voices = await tts.list_voices(language_code)
    except Exception as e:
        logger.error('Failed to list voices for %s: %s', language_code, e)
        raise HTTPException(status_code=502, detail=f'Failed to get available voices: {e}')

    return VoiceListResponse(
        language_code=language_code,
        voices=[
            VoiceResponse(
                name=v.name,
                language_codes=v.language_codes,
                ssml_gender=v.ssml_gender,
                natural_sample_rate_hertz=v.natural_sample_rate_hertz,
            )
            for v in voices
        ],
    )
