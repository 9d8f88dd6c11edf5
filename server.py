#!/usr/bin/env python3
"""
Narrator FastAPI Server

Turns news articles into narrated audio with Google Cloud Text-to-Speech.
Provides endpoints for voice listing, conversion jobs and audio retrieval.
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from narrator.config import (
    APP_NAME,
    APP_VERSION,
    SERVER_HOST,
    SERVER_PORT,
    STORAGE_BACKEND,
    TTS_WORKER_COUNT,
)
from narrator.database import init_db, close_db
from narrator.services.conversion_service import get_conversion_service
from narrator.services.job_processor import get_job_processor
from narrator.services.tts_provider import get_tts_provider
from narrator.routers import health_router, voices_router, jobs_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Startup:
        - Initialize database and create tables
        - Settle long audio operations left over from a previous run
        - Start job processor

    Shutdown:
        - Stop job processor
        - Release provider clients
        - Close database connections
    """
    print(f'Starting {APP_NAME} v{APP_VERSION}...')

    # Initialize database
    print('Initializing database...')
    await init_db()

    tts_provider = get_tts_provider()
    if tts_provider.supports_long_audio:
        print('Long audio synthesis enabled')
    else:
        print('Long audio synthesis not configured, long articles will be chunked')
    print(f'Audio storage backend: {STORAGE_BACKEND}')

    # Operations submitted before a restart are still running at Google
    try:
        resolved = await get_conversion_service().reconcile_long_audio_jobs()
        if resolved:
            print(f'Reconciled {resolved} long audio job(s)')
    except Exception as e:
        print(f'Could not reconcile long audio jobs: {e}')

    # Start job processor
    print(f'Starting job processor ({TTS_WORKER_COUNT} workers)...')
    job_processor = get_job_processor()
    await job_processor.start()

    print(f'Server ready at http://{SERVER_HOST}:{SERVER_PORT}')
    print('API documentation available at /docs')

    yield

    # Shutdown
    print('Shutting down...')

    await job_processor.stop()

    tts_provider.cleanup()

    await close_db()

    print('Shutdown complete.')


# Create FastAPI application
app = FastAPI(
    title=APP_NAME,
    description='Converts news articles to narrated audio with Google Cloud Text-to-Speech.',
    version=APP_VERSION,
    lifespan=lifespan,
)

# Register routers
app.include_router(health_router)
app.include_router(voices_router)
app.include_router(jobs_router)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    uvicorn.run(
        app,
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=False,
        log_level='info',
    )
