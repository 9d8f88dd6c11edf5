"""
Background worker pool for article conversions.
"""
import asyncio
import logging
from typing import List, Optional

from narrator.config import TTS_WORKER_COUNT, TTS_QUEUE_SIZE
from narrator.models.voice_config import VoiceConfig
from narrator.schemas.article import Article
from narrator.services.conversion_service import get_conversion_service

logger = logging.getLogger(__name__)


class ConversionTask:
    """An article queued for background conversion."""
    def __init__(self, article: Article, voice_config: Optional[VoiceConfig] = None):
        self.article = article
        self.voice_config = voice_config

    def __repr__(self):
        return f'<ConversionTask article={self.article.id}>'


class JobProcessor:
    """
    Background job processor using asyncio.Queue.

    A fixed number of worker tasks drain a bounded queue, so at most
    ``worker_count`` conversions talk to the provider at once and
    ``enqueue`` waits when ``queue_size`` tasks are already waiting.
    """

    def __init__(self, worker_count: int = TTS_WORKER_COUNT, queue_size: int = TTS_QUEUE_SIZE):
        self.worker_count = max(1, worker_count)
        self._queue: asyncio.Queue[Optional[ConversionTask]] = asyncio.Queue(maxsize=queue_size)
        self._running = False
        self._workers: List[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    async def start(self):
        """Start the worker tasks."""
        self._running = True
        self._workers = [
            asyncio.create_task(self._process_loop(i), name=f'conversion-worker-{i}')
            for i in range(self.worker_count)
        ]

    async def stop(self):
        """Stop the workers gracefully, cancelling any that do not finish in time."""
        self._running = False
        if not self._workers:
            return

        # One sentinel per worker to wake any that are waiting on the queue
        for _ in self._workers:
            try:
                self._queue.put_nowait(None)
            except asyncio.QueueFull:
                break

        _, pending = await asyncio.wait(self._workers, timeout=5.0)
        for task in pending:
            task.cancel()
        for task in pending:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._workers = []

    async def enqueue(self, task: ConversionTask):
        """Queue an article whose pending job already exists."""
        await self._queue.put(task)
        logger.debug('Queued %r (%d waiting)', task, self._queue.qsize())

    async def _process_loop(self, worker_id: int):
        """Main processing loop - consumes tasks from queue."""
        while self._running:
            try:
                # Wait for a task with timeout to allow checking _running flag
                try:
                    task = await asyncio.wait_for(self._queue.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue

                try:
                    # Check for sentinel value
                    if task is None:
                        continue
                    await self._process_job(task)
                finally:
                    self._queue.task_done()

            except asyncio.CancelledError:
                raise
            except Exception:
                # Log but don't crash the loop
                logger.exception('Error in conversion worker %d', worker_id)

    async def _process_job(self, task: ConversionTask):
        """Process a single conversion."""
        service = get_conversion_service()
        await service.convert_in_background(task.article, task.voice_config)


# Singleton instance
_job_processor: Optional[JobProcessor] = None


def get_job_processor() -> JobProcessor:
    """Get the job processor singleton instance."""
    global _job_processor
    if _job_processor is None:
        _job_processor = JobProcessor()
    return _job_processor


def reset_job_processor():
    """Reset the job processor singleton (for testing)."""
    global _job_processor
    _job_processor = None
