"""
命令行测试
"""

import io
import wave

import numpy as np
from click.testing import CliRunner

from app.cli import main
from app.core.auth import decode_access_token
from app.services import recorder as recorder_module

from app.tests.fakes import FakeInputStream


def test_token_command():
    result = CliRunner().invoke(main, ["token", "user-42"])

    assert result.exit_code == 0
    assert decode_access_token(result.output.strip())["sub"] == "user-42"


def test_record_command(tmp_path, monkeypatch):
    block = np.full((800, 1), 0.1, dtype=np.float32)
    monkeypatch.setattr(
        recorder_module,
        "default_stream_factory",
        lambda samplerate, channels, callback: FakeInputStream(samplerate, channels, callback, blocks=[block])
    )
    output = tmp_path / "lecture.wav"

    result = CliRunner().invoke(main, ["record", "-o", str(output), "-d", "0.01"])

    assert result.exit_code == 0, result.output
    with wave.open(io.BytesIO(output.read_bytes()), "rb") as wav:
        assert wav.getnframes() == 800


def test_record_without_microphone(tmp_path, monkeypatch):
    monkeypatch.setattr(
        recorder_module,
        "default_stream_factory",
        lambda samplerate, channels, callback: FakeInputStream(
            samplerate, channels, callback, fail_on_start=True
        )
    )

    result = CliRunner().invoke(main, ["record", "-o", str(tmp_path / "x.wav"), "-d", "0.01"])

    assert result.exit_code != 0
    assert recorder_module.MICROPHONE_ERROR in result.output
