"""
Durable storage for conversion jobs and voice configuration lookup.
"""
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import async_sessionmaker

from narrator.models.job import ConversionJob, JobStatus
from narrator.models.voice_config import VoiceConfig


class JobStore:
    """
    Repository for ``ConversionJob`` rows.

    Every call runs in its own short session; the returned objects are
    detached and stay readable because sessions do not expire on commit.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def save(self, job: ConversionJob) -> ConversionJob:
        """Insert or update a job and return the persisted copy."""
        async with self._session_factory() as session:
            merged = await session.merge(job)
            await session.commit()
            return merged

    async def find_by_id(self, job_id: str) -> Optional[ConversionJob]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ConversionJob).where(ConversionJob.id == job_id)
            )
            return result.scalar_one_or_none()

    async def find_latest_by_article(self, article_id: str) -> Optional[ConversionJob]:
        """Most recently created job for an article."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ConversionJob)
                .where(ConversionJob.article_id == article_id)
                .order_by(ConversionJob.created_at.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def list_by_article(self, article_id: str, limit: int = 50,
                              offset: int = 0) -> Tuple[List[ConversionJob], int]:
        """Jobs for an article, newest first, with the total count."""
        async with self._session_factory() as session:
            count_result = await session.execute(
                select(func.count(ConversionJob.id)).where(ConversionJob.article_id == article_id)
            )
            total = count_result.scalar()

            result = await session.execute(
                select(ConversionJob)
                .where(ConversionJob.article_id == article_id)
                .order_by(ConversionJob.created_at.desc())
                .limit(limit)
                .offset(offset)
            )
            return list(result.scalars().all()), total

    async def find_outstanding_operations(self) -> List[ConversionJob]:
        """Jobs still generating audio through a long audio operation."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ConversionJob)
                .where(ConversionJob.status == JobStatus.generating_audio.value)
                .where(ConversionJob.operation_name.isnot(None))
                .order_by(ConversionJob.created_at)
            )
            return list(result.scalars().all())

    async def find_voice_config(self, voice_config_id: str) -> Optional[VoiceConfig]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(VoiceConfig).where(VoiceConfig.id == voice_config_id)
            )
            return result.scalar_one_or_none()

