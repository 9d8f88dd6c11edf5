"""
Pydantic schemas for API request/response validation.
"""
from narrator.schemas.article import Article
from narrator.schemas.job import ConvertRequest, JobResponse, JobListResponse
from narrator.schemas.voice import (
    AudioEncoding,
    VoiceSettings,
    VoiceResponse,
    VoiceListResponse,
)

__all__ = [
    'Article',
    'AudioEncoding',
    'ConvertRequest',
    'JobResponse',
    'JobListResponse',
    'VoiceSettings',
    'VoiceResponse',
    'VoiceListResponse',
]
