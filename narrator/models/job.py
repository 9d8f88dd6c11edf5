"""
Conversion job model for article-to-audio tasks.
"""
import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Integer
from sqlalchemy.orm import composite

from narrator.models.base import Base, AuditFields


class JobStatus(str, enum.Enum):
    """Status states for conversion jobs."""
    pending = 'pending'
    fetching_news = 'fetching_news'
    processing_content = 'processing_content'
    generating_audio = 'generating_audio'
    completed = 'completed'
    failed = 'failed'

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.completed, JobStatus.failed)

    def can_transition_to(self, target: 'JobStatus') -> bool:
        """
        Check whether a job in this state may move to ``target``.

        Writing the current state again is always allowed so status
        updates stay idempotent.
        """
        target = JobStatus(target)
        if target == self:
            return True
        return target in _TRANSITIONS[self]


# fetching_news and processing_content are reserved for pipelines that pull
# and clean the article themselves; the conversion pipeline skips them.
_TRANSITIONS = {
    JobStatus.pending: {
        JobStatus.fetching_news,
        JobStatus.processing_content,
        JobStatus.generating_audio,
        JobStatus.failed,
    },
    JobStatus.fetching_news: {
        JobStatus.processing_content,
        JobStatus.generating_audio,
        JobStatus.failed,
    },
    JobStatus.processing_content: {
        JobStatus.generating_audio,
        JobStatus.failed,
    },
    JobStatus.generating_audio: {
        JobStatus.completed,
        JobStatus.failed,
    },
    JobStatus.completed: set(),
    JobStatus.failed: set(),
}


class ConversionJob(Base):
    """
    Represents one attempt to convert an article into an audio file.

    Attributes:
        id: Unique job identifier (UUID)
        article_id: Article being narrated
        user_id: User that requested the conversion
        voice_config_id: Stored voice configuration (null = default voice)
        title: Article title at conversion time
        status: Current job status
        file_name: Generated audio file name
        file_path: Where the audio was stored (path or gs:// URI)
        file_size_bytes: Size of the stored audio
        published_at: When the audio became available
        error_message: Error details if failed
        error_code: Classified error code if failed
        retry_count: Failed background attempts
        operation_name: Outstanding long audio operation, if any
        output_uri: Where that operation writes its output
        audit: Creation and modification stamps
    """
    __tablename__ = 'conversion_jobs'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    article_id = Column(String(64), nullable=False, index=True)
    user_id = Column(String(64), nullable=True)
    voice_config_id = Column(String(36), nullable=True)
    title = Column(Text, nullable=True)
    status = Column(String(32), nullable=False, default=JobStatus.pending.value)
    file_name = Column(String(255), nullable=True)
    file_path = Column(Text, nullable=True)
    file_size_bytes = Column(Integer, nullable=True)
    published_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)
    error_code = Column(String(32), nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    operation_name = Column(Text, nullable=True)
    output_uri = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    created_by = Column(String(64), nullable=True)
    updated_by = Column(String(64), nullable=True)
    audit = composite(AuditFields, created_at, updated_at, created_by, updated_by)

    def __repr__(self):
        return f'<ConversionJob {self.id} article={self.article_id} status={self.status}>'
