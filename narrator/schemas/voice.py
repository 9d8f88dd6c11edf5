"""
Pydantic schemas for voice settings and the voice catalog.
"""
import enum
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator

from narrator.config import (
    DEFAULT_LANGUAGE_CODE,
    DEFAULT_VOICE_NAME,
    DEFAULT_SPEAKING_RATE,
    DEFAULT_PITCH,
    DEFAULT_VOLUME_GAIN_DB,
    DEFAULT_AUDIO_ENCODING,
    DEFAULT_SAMPLE_RATE_HERTZ,
)


class AudioEncoding(str, enum.Enum):
    """Audio encodings supported by Google Cloud Text-to-Speech."""
    MP3 = 'MP3'
    WAV = 'WAV'
    LINEAR16 = 'LINEAR16'
    OGG_OPUS = 'OGG_OPUS'
    MULAW = 'MULAW'
    ALAW = 'ALAW'

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]

    @property
    def file_extension(self) -> str:
        return _FILE_EXTENSIONS[self]

    @property
    def provider_encoding(self) -> str:
        """Name of the matching provider enum member (WAV is LINEAR16 with a header)."""
        return 'LINEAR16' if self is AudioEncoding.WAV else self.value


_MIME_TYPES = {
    AudioEncoding.MP3: 'audio/mpeg',
    AudioEncoding.WAV: 'audio/wav',
    AudioEncoding.LINEAR16: 'audio/wav',
    AudioEncoding.OGG_OPUS: 'audio/ogg',
    AudioEncoding.MULAW: 'audio/basic',
    AudioEncoding.ALAW: 'audio/basic',
}

_FILE_EXTENSIONS = {
    AudioEncoding.MP3: 'mp3',
    AudioEncoding.WAV: 'wav',
    AudioEncoding.LINEAR16: 'wav',
    AudioEncoding.OGG_OPUS: 'ogg',
    AudioEncoding.MULAW: 'ulaw',
    AudioEncoding.ALAW: 'alaw',
}

SUPPORTED_SAMPLE_RATES = (8000, 16000, 22050, 24000, 44100, 48000)


class VoiceSettings(BaseModel):
    """Synthesis parameters for one conversion."""
    language_code: str = Field(
        DEFAULT_LANGUAGE_CODE,
        max_length=10,
        pattern=r'^[a-z]{2}-[A-Z]{2}$',
        description="Language code in 'xx-XX' form (e.g. en-US, vi-VN)",
    )
    voice_name: str = Field(DEFAULT_VOICE_NAME, min_length=1, max_length=50)
    speaking_rate: float = Field(DEFAULT_SPEAKING_RATE, ge=0.25, le=4.0)
    pitch: float = Field(DEFAULT_PITCH, ge=-20.0, le=20.0)
    volume_gain_db: float = Field(DEFAULT_VOLUME_GAIN_DB, ge=-96.0, le=16.0)
    audio_encoding: AudioEncoding = AudioEncoding(DEFAULT_AUDIO_ENCODING)
    sample_rate_hertz: int = DEFAULT_SAMPLE_RATE_HERTZ

    @field_validator('sample_rate_hertz')
    @classmethod
    def check_sample_rate(cls, value: int) -> int:
        if value not in SUPPORTED_SAMPLE_RATES:
            raise ValueError(f'Sample rate must be one of {SUPPORTED_SAMPLE_RATES}')
        return value


class VoiceResponse(BaseModel):
    """Schema for voice response."""
    name: str
    language_codes: List[str]
    ssml_gender: str
    natural_sample_rate_hertz: Optional[int] = None


class VoiceListResponse(BaseModel):
    """Schema for voice list response."""
    language_code: str
    voices: List[VoiceResponse]
