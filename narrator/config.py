"""
Application configuration and paths.
"""
import os
from pathlib import Path

# Application identity
APP_NAME = 'Narrator'
APP_VERSION = '0.1.0'

# Server configuration
SERVER_HOST = os.environ.get('NARRATOR_HOST', '127.0.0.1')
SERVER_PORT = int(os.environ.get('NARRATOR_PORT', '5111'))

# Data directory (database and locally stored audio)
APP_DATA_DIR = Path(
    os.environ.get('NARRATOR_DATA_DIR', Path.home() / '.local' / 'share' / 'narrator')
)

# Database configuration
DATABASE_PATH = APP_DATA_DIR / 'narrator.db'
DATABASE_URL = os.environ.get('NARRATOR_DATABASE_URL', f'sqlite+aiosqlite:///{DATABASE_PATH}')

# Audio storage: 'local' writes under AUDIO_DIR, 'gcs' uploads to AUDIO_BUCKET
STORAGE_BACKEND = os.environ.get('NARRATOR_STORAGE_BACKEND', 'local')
AUDIO_DIR = APP_DATA_DIR / 'audio'
AUDIO_BUCKET = os.environ.get('NARRATOR_AUDIO_BUCKET', '')

# Google Cloud Text-to-Speech
GOOGLE_CLOUD_PROJECT = os.environ.get('GOOGLE_CLOUD_PROJECT', '')

# Long audio synthesis writes its output to this bucket; empty disables it
LONG_AUDIO_BUCKET = os.environ.get('NARRATOR_LONG_AUDIO_BUCKET', '')
LONG_AUDIO_LOCATION = os.environ.get('NARRATOR_LONG_AUDIO_LOCATION', 'global')
LONG_AUDIO_POLL_INTERVAL = float(os.environ.get('NARRATOR_LONG_AUDIO_POLL_INTERVAL', '5'))
LONG_AUDIO_TIMEOUT = float(os.environ.get('NARRATOR_LONG_AUDIO_TIMEOUT', '300'))

# Synchronous synthesis rejects SSML above this many characters
MAX_SSML_LENGTH = 5000

# Long audio synthesis accepts up to 1 MB of input
MAX_LONG_AUDIO_INPUT = 1_048_576

# Background conversion pool
TTS_WORKER_COUNT = int(os.environ.get('NARRATOR_TTS_WORKERS', '2'))
TTS_QUEUE_SIZE = int(os.environ.get('NARRATOR_TTS_QUEUE_SIZE', '100'))

# Voice used when a job has no stored voice configuration
DEFAULT_LANGUAGE_CODE = 'vi-VN'
DEFAULT_VOICE_NAME = 'vi-VN-Standard-A'
DEFAULT_SPEAKING_RATE = 1.0
DEFAULT_PITCH = 0.0
DEFAULT_VOLUME_GAIN_DB = 0.0
DEFAULT_AUDIO_ENCODING = 'MP3'
DEFAULT_SAMPLE_RATE_HERTZ = 24000


def ensure_directories():
    """Create required directories if they don't exist."""
    APP_DATA_DIR.mkdir(parents=True, exist_ok=True)
    AUDIO_DIR.mkdir(parents=True, exist_ok=True)
