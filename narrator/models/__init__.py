"""
SQLAlchemy models.
"""
from narrator.models.base import Base, AuditFields
from narrator.models.job import ConversionJob, JobStatus
from narrator.models.voice_config import VoiceConfig

__all__ = [
    'Base',
    'AuditFields',
    'ConversionJob',
    'JobStatus',
    'VoiceConfig',
]
