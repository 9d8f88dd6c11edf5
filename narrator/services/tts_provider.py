"""
Google Cloud Text-to-Speech adapter.

Wraps the two synthesis capabilities the conversion pipeline relies on:

- bounded synthesis (``synthesize_speech``), which returns audio bytes
  directly but rejects input above a few thousand characters;
- long audio synthesis (``synthesize_long_audio``), a long-running operation
  that accepts up to 1 MB of input and writes LINEAR16 audio to Cloud
  Storage. Its progress is pulled with ``check_operation``.

The Google clients are blocking, so every call runs on a thread pool and the
public methods are coroutines.
"""
import asyncio
import functools
import io
import logging
import uuid
import wave
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from google.cloud import texttospeech

from narrator.config import (
    GOOGLE_CLOUD_PROJECT,
    LONG_AUDIO_BUCKET,
    LONG_AUDIO_LOCATION,
    LONG_AUDIO_POLL_INTERVAL,
    LONG_AUDIO_TIMEOUT,
    MAX_LONG_AUDIO_INPUT,
    TTS_WORKER_COUNT,
)
from narrator.schemas.voice import AudioEncoding, VoiceSettings
from narrator.services.audio_storage import parse_gcs_uri
from narrator.services.errors import SynthesisError
from narrator.services.ssml_chunker import split_text_into_chunks

logger = logging.getLogger(__name__)

# Long audio synthesis only produces this encoding
LONG_AUDIO_ENCODING = AudioEncoding.LINEAR16

# MP3 frames concatenate as-is; WAV segments are re-muxed under one header.
# Ogg streams and the mu-law/A-law WAV variants are not joined.
JOINABLE_ENCODINGS = (AudioEncoding.MP3, AudioEncoding.WAV, AudioEncoding.LINEAR16)


def join_audio(segments: List[bytes], encoding: AudioEncoding) -> bytes:
    """
    Join synthesized segments into one playable stream.

    Raises:
        ValueError: The encoding is not in ``JOINABLE_ENCODINGS``
        SynthesisError: WAV segments disagree on their sample format
    """
    if encoding not in JOINABLE_ENCODINGS:
        raise ValueError(f'Invalid input: {encoding.value} audio cannot be joined')
    if len(segments) == 1:
        return segments[0]
    if encoding is AudioEncoding.MP3:
        return b''.join(segments)

    params = None
    frames = []
    for segment in segments:
        with wave.open(io.BytesIO(segment), 'rb') as wf:
            fmt = (wf.getnchannels(), wf.getsampwidth(), wf.getframerate())
            if params is None:
                params = fmt
            elif fmt != params:
                raise SynthesisError(f'Audio segments differ in format: {params} != {fmt}')
            frames.append(wf.readframes(wf.getnframes()))

    output = io.BytesIO()
    with wave.open(output, 'wb') as wf:
        wf.setnchannels(params[0])
        wf.setsampwidth(params[1])
        wf.setframerate(params[2])
        wf.writeframes(b''.join(frames))
    return output.getvalue()


class Voice:
    """A voice offered by the provider."""
    def __init__(self, name: str, language_codes: List[str], ssml_gender: str,
                 natural_sample_rate_hertz: Optional[int] = None):
        self.name = name
        self.language_codes = language_codes
        self.ssml_gender = ssml_gender
        self.natural_sample_rate_hertz = natural_sample_rate_hertz


class LongAudioOperation:
    """Snapshot of a long audio synthesis operation."""
    def __init__(self, name: str, output_uri: Optional[str] = None, done: bool = False,
                 progress_percentage: Optional[float] = None,
                 started_at: Optional[datetime] = None,
                 error_message: Optional[str] = None):
        self.name = name
        self.output_uri = output_uri
        self.done = done
        self.progress_percentage = progress_percentage
        self.started_at = started_at
        self.error_message = error_message

    @property
    def failed(self) -> bool:
        return self.done and self.error_message is not None

    def __repr__(self):
        return f'<LongAudioOperation {self.name} done={self.done} progress={self.progress_percentage}>'


class GoogleTtsProvider:
    """
    Async facade over the Google Cloud Text-to-Speech clients.

    Clients are created on first use so the service can start without
    credentials; tests pass their own.
    """

    def __init__(
        self,
        project_id: str = GOOGLE_CLOUD_PROJECT,
        long_audio_bucket: str = LONG_AUDIO_BUCKET,
        location: str = LONG_AUDIO_LOCATION,
        poll_interval: float = LONG_AUDIO_POLL_INTERVAL,
        operation_timeout: float = LONG_AUDIO_TIMEOUT,
        client=None,
        long_audio_client=None,
        storage_client=None,
    ):
        self.project_id = project_id
        self.long_audio_bucket = long_audio_bucket
        self.location = location
        self.poll_interval = poll_interval
        self.operation_timeout = operation_timeout
        self._client = client
        self._long_audio_client = long_audio_client
        self._storage_client = storage_client
        # One thread per background worker plus one for synchronous conversions
        self._executor = ThreadPoolExecutor(max_workers=TTS_WORKER_COUNT + 1)

    @property
    def client(self):
        if self._client is None:
            self._client = texttospeech.TextToSpeechClient()
        return self._client

    @property
    def long_audio_client(self):
        if self._long_audio_client is None:
            self._long_audio_client = texttospeech.TextToSpeechLongAudioSynthesizeClient()
        return self._long_audio_client

    @property
    def storage_client(self):
        if self._storage_client is None:
            from google.cloud import storage
            self._storage_client = storage.Client(project=self.project_id or None)
        return self._storage_client

    @property
    def supports_long_audio(self) -> bool:
        """Long audio needs a project and an output bucket."""
        return bool(self.project_id and self.long_audio_bucket)

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args))

    # Request building

    @staticmethod
    def _synthesis_input(text: str) -> texttospeech.SynthesisInput:
        if text.strip().startswith('<speak>'):
            return texttospeech.SynthesisInput(ssml=text)
        return texttospeech.SynthesisInput(text=text)

    @staticmethod
    def _voice_params(voice_settings: VoiceSettings) -> texttospeech.VoiceSelectionParams:
        return texttospeech.VoiceSelectionParams(
            language_code=voice_settings.language_code,
            name=voice_settings.voice_name,
        )

    @staticmethod
    def _audio_config(voice_settings: VoiceSettings,
                      encoding: Optional[AudioEncoding] = None) -> texttospeech.AudioConfig:
        encoding = encoding or voice_settings.audio_encoding
        return texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding[encoding.provider_encoding],
            speaking_rate=voice_settings.speaking_rate,
            pitch=voice_settings.pitch,
            volume_gain_db=voice_settings.volume_gain_db,
            sample_rate_hertz=voice_settings.sample_rate_hertz,
        )

    # Bounded synthesis

    def _synthesize_sync(self, text: str, voice_settings: VoiceSettings) -> bytes:
        response = self.client.synthesize_speech(
            input=self._synthesis_input(text),
            voice=self._voice_params(voice_settings),
            audio_config=self._audio_config(voice_settings),
        )
        return response.audio_content

    async def synthesize(self, text: str, voice_settings: VoiceSettings) -> bytes:
        """
        Synthesize SSML or plain text in one call.

        Input starting with ``<speak>`` is sent as SSML. The provider caps
        the input size; callers check the length first.

        Returns:
            Audio bytes in ``voice_settings.audio_encoding``
        """
        logger.debug('Synthesizing %d characters', len(text))
        return await self._run(self._synthesize_sync, text, voice_settings)

    async def synthesize_text_in_chunks(self, text: str, voice_settings: VoiceSettings) -> bytes:
        """
        Synthesize plain text of any length with the bounded call.

        The text is cut at sentence boundaries into provider-sized pieces
        and the audio of each piece is joined into one stream.

        Raises:
            ValueError: Text is blank, or the encoding cannot be joined
        """
        encoding = voice_settings.audio_encoding
        if encoding not in JOINABLE_ENCODINGS:
            raise ValueError(
                f'Invalid input: {encoding.value} audio cannot be joined across chunks, '
                'use MP3, WAV or LINEAR16'
            )

        chunks = split_text_into_chunks(text)
        if not chunks:
            raise ValueError('Invalid input: text to synthesize is empty')
        logger.info('Synthesizing text in %d chunks', len(chunks))

        segments = []
        for chunk in chunks:
            segments.append(await self.synthesize(chunk, voice_settings))
        return join_audio(segments, encoding)

    # Long audio synthesis

    def _start_long_audio_sync(self, text: str, voice_settings: VoiceSettings,
                               output_file_name: Optional[str]) -> LongAudioOperation:
        if not text or not text.strip():
            raise ValueError('Invalid input: text to synthesize is empty')
        if len(text) > MAX_LONG_AUDIO_INPUT:
            raise ValueError(
                f'Invalid input: text is {len(text)} characters, limit is {MAX_LONG_AUDIO_INPUT}'
            )
        if not self.supports_long_audio:
            raise SynthesisError('Long audio synthesis requires a project id and an output bucket')

        file_name = output_file_name or f'long_audio_{uuid.uuid4()}.wav'
        output_uri = f'gs://{self.long_audio_bucket}/{file_name}'

        request = texttospeech.SynthesizeLongAudioRequest(
            parent=f'projects/{self.project_id}/locations/{self.location}',
            input=self._synthesis_input(text),
            audio_config=self._audio_config(voice_settings, LONG_AUDIO_ENCODING),
            voice=self._voice_params(voice_settings),
            output_gcs_uri=output_uri,
        )

        operation = self.long_audio_client.synthesize_long_audio(request=request)
        snapshot = self._to_operation(operation.operation, output_uri)
        logger.info('Long audio synthesis operation started: %s -> %s', snapshot.name, output_uri)
        return snapshot

    async def start_long_audio(self, text: str, voice_settings: VoiceSettings,
                               output_file_name: Optional[str] = None) -> LongAudioOperation:
        """
        Submit a long audio synthesis operation and return immediately.

        The requested encoding is ignored: output is always LINEAR16.

        Raises:
            ValueError: Input is empty or larger than 1 MB
            SynthesisError: Long audio is not configured
        """
        logger.info('Starting long audio synthesis: %d characters', len(text or ''))
        return await self._run(self._start_long_audio_sync, text, voice_settings, output_file_name)

    def _check_operation_sync(self, operation_name: str,
                              output_uri: Optional[str]) -> LongAudioOperation:
        operations_client = self.long_audio_client.transport.operations_client
        raw = operations_client.get_operation(operation_name)
        snapshot = self._to_operation(raw, output_uri)

        if snapshot.failed:
            logger.error('Long audio synthesis operation %s failed: %s', operation_name, snapshot.error_message)
        elif snapshot.done:
            logger.info('Long audio synthesis operation %s completed', operation_name)
        return snapshot

    async def check_operation(self, operation_name: str,
                              output_uri: Optional[str] = None) -> LongAudioOperation:
        """Pull the current state of a long audio operation."""
        return await self._run(self._check_operation_sync, operation_name, output_uri)

    def _fetch_output_sync(self, output_uri: str) -> bytes:
        bucket_name, blob_path = parse_gcs_uri(output_uri)
        return self.storage_client.bucket(bucket_name).blob(blob_path).download_as_bytes()

    async def fetch_output(self, output_uri: str) -> bytes:
        """Download the audio a finished long audio operation wrote."""
        return await self._run(self._fetch_output_sync, output_uri)

    async def wait_for_long_audio(self, operation: LongAudioOperation) -> bytes:
        """
        Poll an operation until it finishes, then download its output.

        Raises:
            TimeoutError: The operation did not finish within ``operation_timeout``
            SynthesisError: The operation finished with an error
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.operation_timeout
        output_uri = operation.output_uri

        while not operation.done:
            if loop.time() >= deadline:
                raise TimeoutError(
                    f'Long audio synthesis timeout after {self.operation_timeout:.0f}s '
                    f'(operation {operation.name})'
                )
            await asyncio.sleep(self.poll_interval)
            operation = await self.check_operation(operation.name, output_uri)
            logger.debug('Operation %s progress: %s%%', operation.name, operation.progress_percentage)

        if operation.failed:
            raise SynthesisError(f'Long audio synthesis failed: {operation.error_message}')

        return await self.fetch_output(output_uri)

    async def synthesize_long_text(
        self,
        text: str,
        voice_settings: VoiceSettings,
        output_file_name: Optional[str] = None,
        on_submitted: Optional[Callable[[LongAudioOperation], Awaitable[None]]] = None,
    ) -> bytes:
        """
        Synthesize arbitrarily long text through the long audio operation.

        ``on_submitted`` is awaited once the operation exists, before
        polling starts, so the caller can record it.

        Returns:
            LINEAR16 audio bytes
        """
        operation = await self.start_long_audio(text, voice_settings, output_file_name)
        if on_submitted is not None:
            await on_submitted(operation)
        return await self.wait_for_long_audio(operation)

    def _to_operation(self, raw, output_uri: Optional[str]) -> LongAudioOperation:
        snapshot = LongAudioOperation(name=raw.name, output_uri=output_uri, done=bool(raw.done))

        metadata = self._unpack_metadata(raw)
        if metadata is not None:
            snapshot.progress_percentage = metadata.progress_percentage
            snapshot.started_at = metadata.start_time

        if raw.done and raw.WhichOneof('result') == 'error':
            snapshot.error_message = raw.error.message or f'Operation failed with code {raw.error.code}'
        return snapshot

    @staticmethod
    def _unpack_metadata(raw) -> Optional[texttospeech.SynthesizeLongAudioMetadata]:
        if not raw.metadata.value:
            return None
        try:
            return texttospeech.SynthesizeLongAudioMetadata.deserialize(raw.metadata.value)
        except Exception as e:
            logger.warning('Could not unpack operation metadata: %s', e)
            return None

    # Voice catalog

    def _list_voices_sync(self, language_code: str) -> List[Voice]:
        response = self.client.list_voices(language_code=language_code)
        return [
            Voice(
                name=v.name,
                language_codes=list(v.language_codes),
                ssml_gender=getattr(v.ssml_gender, 'name', str(v.ssml_gender)),
                natural_sample_rate_hertz=v.natural_sample_rate_hertz or None,
            )
            for v in response.voices
        ]

    async def list_voices(self, language_code: str) -> List[Voice]:
        """List the provider's voices for a language code."""
        voices = await self._run(self._list_voices_sync, language_code)
        logger.info('Found %d voices for language: %s', len(voices), language_code)
        return voices

    async def validate_voice_settings(self, voice_settings: VoiceSettings) -> bool:
        """Check that the voice exists for its language. Lookup failures count as invalid."""
        try:
            voices = await self.list_voices(voice_settings.language_code)
        except Exception as e:
            logger.error('Failed to validate voice settings: %s', e, exc_info=True)
            return False

        if not any(v.name == voice_settings.voice_name for v in voices):
            logger.warning('Voice %s not found for language %s',
                           voice_settings.voice_name, voice_settings.language_code)
            return False
        return True

    def cleanup(self):
        """Clean up resources."""
        self._executor.shutdown(wait=False)


# Singleton instance
_tts_provider: Optional[GoogleTtsProvider] = None


def get_tts_provider() -> GoogleTtsProvider:
    """
    Get the TTS provider singleton instance.

    Usage with FastAPI dependency injection:
        @app.get('/voices')
        async def list_voices(tts: GoogleTtsProvider = Depends(get_tts_provider)):
            return await tts.list_voices('vi-VN')
    """
    global _tts_provider
    if _tts_provider is None:
        _tts_provider = GoogleTtsProvider()
    return _tts_provider


def reset_tts_provider():
    """Reset the TTS provider singleton (for testing)."""
    global _tts_provider
    if _tts_provider is not None:
        _tts_provider.cleanup()
    _tts_provider = None
