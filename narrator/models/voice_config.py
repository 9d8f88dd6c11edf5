"""
Stored voice configuration model.
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Float, Boolean
from sqlalchemy.orm import composite

from narrator.models.base import Base, AuditFields


class VoiceConfig(Base):
    """
    A user's saved synthesis settings.

    Rows are managed by the account side of the product; conversions only
    read them.
    """
    __tablename__ = 'voice_configs'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=True, index=True)
    name = Column(String(100), nullable=False)
    language_code = Column(String(10), nullable=False)
    voice_name = Column(String(50), nullable=False)
    speaking_rate = Column(Float, nullable=False, default=1.0)
    pitch = Column(Float, nullable=False, default=0.0)
    volume_gain_db = Column(Float, nullable=False, default=0.0)
    audio_encoding = Column(String(16), nullable=False, default='MP3')
    sample_rate_hertz = Column(Integer, nullable=False, default=24000)
    is_default = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    created_by = Column(String(64), nullable=True)
    updated_by = Column(String(64), nullable=True)
    audit = composite(AuditFields, created_at, updated_at, created_by, updated_by)

    def __repr__(self):
        return f'<VoiceConfig {self.id} voice={self.voice_name}>'
