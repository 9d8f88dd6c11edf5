"""
Pydantic schemas for conversion job API operations.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from narrator.schemas.article import Article


class ConvertRequest(BaseModel):
    """Schema for requesting an article conversion."""
    article: Article
    voice_config_id: Optional[str] = Field(None, description='Stored voice configuration (null = default voice)')


class JobResponse(BaseModel):
    """Schema for job response."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    article_id: str
    user_id: Optional[str]
    voice_config_id: Optional[str]
    title: Optional[str]
    status: str
    file_name: Optional[str]
    file_path: Optional[str]
    file_size_bytes: Optional[int]
    published_at: Optional[datetime]
    error_message: Optional[str]
    error_code: Optional[str]
    retry_count: int
    operation_name: Optional[str]
    created_at: datetime
    updated_at: datetime


class JobListResponse(BaseModel):
    """Schema for paginated job list response."""
    jobs: List[JobResponse]
    total: int
    limit: int
    offset: int
