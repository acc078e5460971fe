"""Tests for SoundDeviceRecorder."""

from __future__ import annotations

import os
import time
import wave
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from recorder import FILE_PREFIX, SoundDevicePermission, SoundDeviceRecorder


def _block(n_samples: int = 1600) -> np.ndarray:
    """A silent int16 block shaped like sounddevice's callback input."""
    return np.zeros((n_samples, 1), dtype=np.int16)


# ---------------------------------------------------------------
# Primary and fallback formats
# ---------------------------------------------------------------

@patch("recorder.sf")
@patch("recorder.sd")
def test_start_prefers_compressed_format(mock_sd: MagicMock, mock_sf: MagicMock, tmp_path: Path) -> None:
    stream = MagicMock()
    mock_sd.InputStream.return_value = stream

    recorder = SoundDeviceRecorder(scratch_dir=tmp_path, min_recording_s=0)
    assert recorder.start() is True

    assert recorder.audio_format == "mp3"
    assert recorder.recording is True
    assert mock_sf.SoundFile.call_args.kwargs["format"] == "MP3"
    stream.start.assert_called_once()

    artifact = recorder.stop()
    assert artifact is not None
    assert artifact.audio_format == "mp3"
    assert artifact.path.name.startswith(FILE_PREFIX)
    assert artifact.path.suffix == ".mp3"
    stream.stop.assert_called_once()
    stream.close.assert_called_once()
    mock_sf.SoundFile.return_value.close.assert_called_once()


@patch("recorder.sf")
@patch("recorder.sd")
def test_falls_back_to_wav_when_compressed_fails(mock_sd: MagicMock, mock_sf: MagicMock, tmp_path: Path) -> None:
    mock_sf.SoundFile.side_effect = RuntimeError("MP3 not supported by libsndfile")
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder(scratch_dir=tmp_path, sample_rate=16000, min_recording_s=0)
    assert recorder.start() is True
    assert recorder.audio_format == "wav"

    recorder._on_audio(_block(1600), frames=1600, time_info=None, status=None)
    artifact = recorder.stop()

    assert artifact is not None
    assert artifact.audio_format == "wav"
    with wave.open(str(artifact.path), "rb") as wf:
        assert wf.getnframes() == 1600
        assert wf.getframerate() == 16000
        assert wf.getsampwidth() == 2


@patch("recorder.sf")
@patch("recorder.sd")
def test_start_returns_false_when_both_formats_fail(mock_sd: MagicMock, mock_sf: MagicMock, tmp_path: Path) -> None:
    mock_sd.InputStream.side_effect = Exception("no input device")

    recorder = SoundDeviceRecorder(scratch_dir=tmp_path, min_recording_s=0)

    assert recorder.start() is False
    assert recorder.recording is False
    assert mock_sd.InputStream.call_count == 2
    mock_sf.SoundFile.return_value.close.assert_called_once()
    assert list(tmp_path.iterdir()) == []


@patch("recorder.sf")
@patch("recorder.sd")
def test_start_while_recording_returns_false(mock_sd: MagicMock, mock_sf: MagicMock, tmp_path: Path) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder(scratch_dir=tmp_path, min_recording_s=0)
    assert recorder.start() is True
    assert recorder.start() is False
    assert mock_sd.InputStream.call_count == 1
    recorder.cancel()


def test_start_raises_without_sounddevice(monkeypatch, tmp_path: Path) -> None:  # noqa: ANN001
    import recorder as rec_mod
    monkeypatch.setattr(rec_mod, "sd", None)

    recorder = SoundDeviceRecorder(scratch_dir=tmp_path)
    with pytest.raises(RuntimeError, match="sounddevice is not installed"):
        recorder.start()


# ---------------------------------------------------------------
# Stop
# ---------------------------------------------------------------

@patch("recorder.time.sleep")
@patch("recorder.sf")
@patch("recorder.sd")
def test_stop_waits_for_minimum_duration(
    mock_sd: MagicMock, mock_sf: MagicMock, mock_sleep: MagicMock, tmp_path: Path
) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder(scratch_dir=tmp_path, min_recording_s=0.5)
    recorder.start()
    recorder.stop()

    mock_sleep.assert_called_once()
    waited = mock_sleep.call_args.args[0]
    assert 0 < waited <= 0.5


@patch("recorder.sf")
@patch("recorder.sd")
def test_stop_failure_cleans_up_and_returns_none(mock_sd: MagicMock, mock_sf: MagicMock, tmp_path: Path) -> None:
    mock_sf.SoundFile.side_effect = RuntimeError("no mp3")
    stream = MagicMock()
    stream.stop.side_effect = Exception("device lost")
    mock_sd.InputStream.return_value = stream

    recorder = SoundDeviceRecorder(scratch_dir=tmp_path, min_recording_s=0)
    recorder.start()

    assert recorder.stop() is None
    assert recorder.recording is False
    assert list(tmp_path.iterdir()) == []


def test_stop_without_recording_returns_none(tmp_path: Path) -> None:
    recorder = SoundDeviceRecorder(scratch_dir=tmp_path)
    assert recorder.stop() is None


# ---------------------------------------------------------------
# Cancel and file housekeeping
# ---------------------------------------------------------------

@patch("recorder.sf")
@patch("recorder.sd")
def test_cancel_releases_stream_and_deletes_file(mock_sd: MagicMock, mock_sf: MagicMock, tmp_path: Path) -> None:
    mock_sf.SoundFile.side_effect = RuntimeError("no mp3")
    stream = MagicMock()
    mock_sd.InputStream.return_value = stream

    recorder = SoundDeviceRecorder(scratch_dir=tmp_path, min_recording_s=0)
    recorder.start()
    assert len(list(tmp_path.iterdir())) == 1

    recorder.cancel()

    stream.stop.assert_called_once()
    stream.close.assert_called_once()
    assert recorder.recording is False
    assert list(tmp_path.iterdir()) == []


@patch("recorder.sf")
@patch("recorder.sd")
def test_callback_after_stop_is_noop(mock_sd: MagicMock, mock_sf: MagicMock, tmp_path: Path) -> None:
    mock_sd.InputStream.return_value = MagicMock()
    writer = mock_sf.SoundFile.return_value

    recorder = SoundDeviceRecorder(scratch_dir=tmp_path, min_recording_s=0)
    recorder.start()
    recorder._on_audio(_block(), frames=1600, time_info=None, status=None)
    recorder.stop()
    recorder._on_audio(_block(), frames=1600, time_info=None, status=None)

    assert writer.write.call_count == 1


def test_delete_file_ignores_missing_file(tmp_path: Path) -> None:
    recorder = SoundDeviceRecorder(scratch_dir=tmp_path)
    recorder.delete_file(tmp_path / "gone.mp3")


def test_cleanup_old_files_removes_only_stale_recordings(tmp_path: Path) -> None:
    stale = tmp_path / f"{FILE_PREFIX}1.mp3"
    fresh = tmp_path / f"{FILE_PREFIX}2.wav"
    unrelated = tmp_path / "notes.txt"
    for path in (stale, fresh, unrelated):
        path.write_bytes(b"x")
    old = time.time() - 600
    os.utime(stale, (old, old))
    os.utime(unrelated, (old, old))

    SoundDeviceRecorder(scratch_dir=tmp_path).cleanup_old_files(max_age_s=300)

    assert not stale.exists()
    assert fresh.exists()
    assert unrelated.exists()


def test_cleanup_old_files_without_scratch_dir(tmp_path: Path) -> None:
    SoundDeviceRecorder(scratch_dir=tmp_path / "missing").cleanup_old_files()


# ---------------------------------------------------------------
# Permission
# ---------------------------------------------------------------

@patch("recorder.sd")
def test_permission_granted_when_input_device_found(mock_sd: MagicMock) -> None:
    mock_sd.query_devices.return_value = {"name": "Built-in Microphone", "max_input_channels": 1}
    assert SoundDevicePermission().has_microphone_permission() is True


@patch("recorder.sd")
def test_permission_denied_when_query_fails(mock_sd: MagicMock) -> None:
    mock_sd.query_devices.side_effect = Exception("PortAudio error")
    assert SoundDevicePermission().has_microphone_permission() is False


@patch("recorder.sd", None)
def test_permission_denied_without_sounddevice() -> None:
    assert SoundDevicePermission().has_microphone_permission() is False
