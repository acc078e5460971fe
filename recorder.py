"""Microphone recorder adapter.

Audio is streamed from sounddevice straight into a scratch file. MP3 through
soundfile is tried first; if that cannot be opened or started the recorder
falls back to a plain WAV file written with ``wave``.
"""

from __future__ import annotations

import logging
import tempfile
import threading
import time
import wave
from pathlib import Path
from typing import Any, Optional

from models import AudioArtifact

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

try:
    import soundfile as sf
except Exception:  # pragma: no cover
    sf = None  # type: ignore

logger = logging.getLogger(__name__)

FILE_PREFIX = "voice_recording_"
MIN_RECORDING_S = 0.5


class _CompressedWriter:
    extension = ".mp3"
    audio_format = "mp3"

    def __init__(self, path: Path, sample_rate: int, channels: int) -> None:
        if sf is None:
            raise RuntimeError("soundfile is not installed")
        self._file = sf.SoundFile(
            str(path),
            mode="w",
            samplerate=sample_rate,
            channels=channels,
            format="MP3",
        )

    def write(self, indata: Any) -> None:
        self._file.write(indata)

    def close(self) -> None:
        self._file.close()


class _WavWriter:
    extension = ".wav"
    audio_format = "wav"

    def __init__(self, path: Path, sample_rate: int, channels: int) -> None:
        self._file = wave.open(str(path), "wb")
        self._file.setnchannels(channels)
        self._file.setsampwidth(2)
        self._file.setframerate(sample_rate)

    def write(self, indata: Any) -> None:
        self._file.writeframes(np.asarray(indata, dtype=np.int16).tobytes())

    def close(self) -> None:
        self._file.close()


class SoundDeviceRecorder:
    def __init__(
        self,
        scratch_dir: Path | None = None,
        sample_rate: int = 44100,
        channels: int = 1,
        min_recording_s: float = MIN_RECORDING_S,
    ) -> None:
        self.scratch_dir = scratch_dir or Path(tempfile.gettempdir()) / "voiceflow"
        self.sample_rate = sample_rate
        self.channels = channels
        self.min_recording_s = min_recording_s
        self._stream: Any = None
        self._writer: Any = None
        self._output_file: Optional[Path] = None
        self._running = False
        self._use_fallback = False
        self._started_at = 0.0
        self._lock = threading.Lock()

    @property
    def audio_format(self) -> str:
        return "wav" if self._use_fallback else "mp3"

    @property
    def recording(self) -> bool:
        return self._running

    def start(self) -> bool:
        with self._lock:
            if self._running:
                return False
            if sd is None or np is None:
                raise RuntimeError("sounddevice is not installed")
            self._cleanup()
            self._use_fallback = False
            try:
                self._start_with(_CompressedWriter)
                return True
            except Exception as exc:
                logger.warning("Compressed recording failed, falling back to WAV: %s", exc)
                self._cleanup()
            self._use_fallback = True
            try:
                self._start_with(_WavWriter)
                return True
            except Exception as exc:
                logger.error("Fallback recording failed: %s", exc)
                self._cleanup()
                return False

    def stop(self) -> Optional[AudioArtifact]:
        with self._lock:
            if not self._running:
                return None
            elapsed = time.monotonic() - self._started_at
            if elapsed < self.min_recording_s:
                time.sleep(self.min_recording_s - elapsed)
            try:
                self._running = False
                self._stream.stop()
                self._stream.close()
                self._stream = None
                self._writer.close()
                self._writer = None
            except Exception as exc:
                logger.error("Finalizing recording failed: %s", exc)
                self._cleanup()
                return None
            path, self._output_file = self._output_file, None
            return AudioArtifact(path=path, audio_format=self.audio_format)

    def cancel(self) -> None:
        with self._lock:
            self._cleanup()

    def delete_file(self, path: Path) -> None:
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete %s: %s", path, exc)

    def cleanup_old_files(self, max_age_s: float = 300.0) -> None:
        """Delete leftover recordings older than ``max_age_s``."""
        if not self.scratch_dir.exists():
            return
        now = time.time()
        for path in self.scratch_dir.glob(f"{FILE_PREFIX}*"):
            try:
                if now - path.stat().st_mtime > max_age_s:
                    path.unlink()
                    logger.debug("Removed stale recording %s", path)
            except OSError:
                continue

    def _start_with(self, writer_cls: Any) -> None:
        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        stamp = int(time.time() * 1000)
        self._output_file = self.scratch_dir / f"{FILE_PREFIX}{stamp}{writer_cls.extension}"
        self._writer = writer_cls(self._output_file, self.sample_rate, self.channels)
        self._stream = sd.InputStream(
            samplerate=self.sample_rate,
            channels=self.channels,
            dtype="int16",
            callback=self._on_audio,
        )
        self._stream.start()
        self._running = True
        self._started_at = time.monotonic()

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        writer = self._writer
        if not self._running or writer is None:
            return
        try:
            writer.write(indata)
        except Exception as exc:
            logger.error("Dropping audio block: %s", exc)

    def _cleanup(self) -> None:
        """Release the stream and writer and delete the partial file."""
        self._running = False
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception:
                logger.debug("Ignoring error while closing input stream", exc_info=True)
        writer, self._writer = self._writer, None
        if writer is not None:
            try:
                writer.close()
            except Exception:
                logger.debug("Ignoring error while closing writer", exc_info=True)
        output, self._output_file = self._output_file, None
        if output is not None:
            self.delete_file(output)


class SoundDevicePermission:
    """Reports whether an input device is reachable."""

    def has_microphone_permission(self) -> bool:
        if sd is None:
            return False
        try:
            return bool(sd.query_devices(kind="input"))
        except Exception:
            return False
