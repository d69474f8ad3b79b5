"""
麦克风录音测试(使用模拟输入流)
"""

import io
import wave

import numpy as np
import pytest

from app.services.recorder import AudioRecorder, MICROPHONE_ERROR, compute_levels, LEVEL_BANDS

from app.tests.fakes import FakeInputStream


def make_recorder(blocks=None, fail_on_start=False, sample_rate=16000):
    streams = []

    def factory(samplerate, channels, callback):
        stream = FakeInputStream(samplerate, channels, callback, blocks=blocks, fail_on_start=fail_on_start)
        streams.append(stream)
        return stream

    return AudioRecorder(sample_rate=sample_rate, stream_factory=factory), streams


def sine_block(frames=1600, freq=440.0, sample_rate=16000):
    t = np.arange(frames) / sample_rate
    return (0.5 * np.sin(2 * np.pi * freq * t)).astype(np.float32).reshape(-1, 1)


class TestComputeLevels:

    def test_silence_is_zero(self):
        levels = compute_levels(np.zeros((512, 1), dtype=np.float32))
        assert levels == [0] * LEVEL_BANDS

    def test_tone_levels_in_range(self):
        levels = compute_levels(sine_block())
        assert len(levels) == LEVEL_BANDS
        assert all(0 <= v <= 255 for v in levels)
        assert max(levels) > 0

    def test_short_and_empty_blocks(self):
        assert len(compute_levels(np.ones(10, dtype=np.float32))) == LEVEL_BANDS
        assert compute_levels(np.zeros(0, dtype=np.float32)) == [0] * LEVEL_BANDS


class TestAudioRecorder:

    def test_record_returns_wav(self):
        recorder, streams = make_recorder(blocks=[sine_block(), sine_block()])

        assert recorder.start_recording() is True
        assert recorder.is_recording
        assert streams[0].started
        assert len(recorder.levels) == LEVEL_BANDS

        recorded = recorder.stop_recording()

        assert not recorder.is_recording
        assert streams[0].stopped and streams[0].closed
        assert recorded.content_type == "audio/wav"
        assert recorded.duration == pytest.approx(0.2)
        with wave.open(io.BytesIO(recorded.data), "rb") as wav:
            assert wav.getframerate() == 16000
            assert wav.getnchannels() == 1
            assert wav.getnframes() == 3200

    def test_start_twice_is_noop(self):
        recorder, streams = make_recorder()
        recorder.start_recording()
        assert recorder.start_recording() is True
        assert len(streams) == 1
        recorder.close()

    def test_microphone_failure(self):
        recorder, streams = make_recorder(fail_on_start=True)

        assert recorder.start_recording() is False
        assert recorder.error == MICROPHONE_ERROR
        assert not recorder.is_recording
        assert streams[0].closed

    def test_error_cleared_on_successful_start(self):
        recorder, _ = make_recorder()
        recorder.error = MICROPHONE_ERROR
        assert recorder.start_recording() is True
        assert recorder.error is None
        recorder.close()

    def test_stop_without_start(self):
        recorder, _ = make_recorder()
        with pytest.raises(RuntimeError):
            recorder.stop_recording()

    def test_stop_with_no_audio(self):
        recorder, _ = make_recorder()
        recorder.start_recording()
        recorded = recorder.stop_recording()
        assert recorded.duration == 0
        with wave.open(io.BytesIO(recorded.data), "rb") as wav:
            assert wav.getnframes() == 0

    def test_new_recording_discards_previous_chunks(self):
        recorder, _ = make_recorder(blocks=[sine_block()])
        recorder.start_recording()
        recorder.stop_recording()

        recorder.start_recording()
        recorded = recorder.stop_recording()
        assert recorded.duration == pytest.approx(0.1)

    def test_context_manager_releases_stream(self):
        recorder, streams = make_recorder()
        with recorder:
            recorder.start_recording()
            assert recorder.elapsed >= 0
        assert streams[0].stopped
        assert streams[0].closed
        assert not recorder.is_recording
        assert recorder.elapsed == 0.0
