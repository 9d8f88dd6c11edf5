"""
Audio storage backends for finished conversions.
"""
import logging
from pathlib import Path
from typing import Optional, Tuple

from narrator.config import STORAGE_BACKEND, AUDIO_DIR, AUDIO_BUCKET, GOOGLE_CLOUD_PROJECT
from narrator.models.job import ConversionJob
from narrator.schemas.voice import AudioEncoding

logger = logging.getLogger(__name__)


def parse_gcs_uri(gcs_uri: str) -> Tuple[str, str]:
    """
    Parse a GCS URI into bucket name and blob path.

    Args:
        gcs_uri: GCS URI (e.g., 'gs://bucket/path/to/file.wav')

    Returns:
        Tuple of (bucket_name, blob_path); blob_path is empty for a bare bucket

    Raises:
        ValueError: If URI doesn't start with 'gs://'
    """
    if not gcs_uri.startswith('gs://'):
        raise ValueError(f"Invalid GCS URI, must start with 'gs://': {gcs_uri}")

    path = gcs_uri[5:]
    if '/' in path:
        bucket_name, blob_path = path.split('/', 1)
    else:
        bucket_name, blob_path = path, ''

    return bucket_name, blob_path


def content_type_for(file_name: Optional[str]) -> str:
    """MIME type for an audio file name, by extension."""
    extension = Path(file_name or '').suffix.lstrip('.').lower()
    for encoding in AudioEncoding:
        if encoding.file_extension == extension:
            return encoding.mime_type
    return 'application/octet-stream'


class AudioStorage:
    """Persists synthesized audio and returns where it lives."""

    def store(self, job: ConversionJob, data: bytes) -> str:
        """
        Store audio bytes for a job.

        Args:
            job: Job the audio belongs to; ``file_name`` must be set
            data: Encoded audio

        Returns:
            Path or URI of the stored file
        """
        raise NotImplementedError


class LocalAudioStorage(AudioStorage):
    """Writes audio under ``<root>/<article_id>/<file_name>``."""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root is not None else AUDIO_DIR

    def store(self, job: ConversionJob, data: bytes) -> str:
        if not job.file_name:
            raise ValueError(f'Invalid job {job.id}: file name not set')

        output_path = self.root / str(job.article_id) / job.file_name
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(data)

        logger.info('Stored %d bytes for job %s at %s', len(data), job.id, output_path)
        return str(output_path)


class GcsAudioStorage(AudioStorage):
    """Uploads audio to ``gs://<bucket>/<prefix>/<article_id>/<file_name>``."""

    def __init__(self, bucket_name: str = AUDIO_BUCKET, prefix: str = 'audio', client=None):
        if not bucket_name:
            raise ValueError('Invalid storage configuration: no audio bucket set')
        self.bucket_name = bucket_name
        self.prefix = prefix.strip('/')
        self._client = client

    @property
    def client(self):
        if self._client is None:
            from google.cloud import storage
            self._client = storage.Client(project=GOOGLE_CLOUD_PROJECT or None)
        return self._client

    def store(self, job: ConversionJob, data: bytes) -> str:
        if not job.file_name:
            raise ValueError(f'Invalid job {job.id}: file name not set')

        blob_path = '/'.join(p for p in (self.prefix, str(job.article_id), job.file_name) if p)
        blob = self.client.bucket(self.bucket_name).blob(blob_path)
        blob.upload_from_string(data, content_type=content_type_for(job.file_name))

        gcs_uri = f'gs://{self.bucket_name}/{blob_path}'
        logger.info('Uploaded %d bytes for job %s to %s', len(data), job.id, gcs_uri)
        return gcs_uri


# Singleton instance
_audio_storage: Optional[AudioStorage] = None


def get_audio_storage() -> AudioStorage:
    """Get the configured audio storage backend."""
    global _audio_storage
    if _audio_storage is None:
        if STORAGE_BACKEND == 'gcs':
            _audio_storage = GcsAudioStorage()
        else:
            _audio_storage = LocalAudioStorage()
    return _audio_storage


def reset_audio_storage():
    """Reset the audio storage singleton (for testing)."""
    global _audio_storage
    _audio_storage = None
