"""
麦克风录音 - 基于sounddevice输入流

录音期间持续缓存float32采样，并为每个音频块计算最多32个频段的幅度(0-255)供电平显示。
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from app.core.logging import audio_logger as logger
from app.utils.audio_utils import encode_wav

MICROPHONE_ERROR = "Could not access microphone. Please check permissions."

FFT_SIZE = 128
LEVEL_BANDS = 32
MIN_DECIBELS = -100.0
MAX_DECIBELS = -30.0


@dataclass
class RecordedAudio:
    """一次录音的结果"""
    data: bytes
    content_type: str
    duration: float
    sample_rate: int


def default_stream_factory(samplerate: int, channels: int, callback: Callable):
    """创建sounddevice输入流"""
    import sounddevice as sd

    return sd.InputStream(
        samplerate=samplerate,
        channels=channels,
        dtype="float32",
        callback=callback
    )


def compute_levels(block: np.ndarray, bands: int = LEVEL_BANDS) -> List[int]:
    """
    计算音频块的频谱幅度

    取最后FFT_SIZE个采样做加窗FFT，按分贝映射到0-255，返回前 bands 个频段。
    """
    samples = np.asarray(block, dtype=np.float32).reshape(-1)[-FFT_SIZE:]
    if samples.size == 0:
        return [0] * bands
    if samples.size < FFT_SIZE:
        samples = np.pad(samples, (0, FFT_SIZE - samples.size))

    magnitudes = np.abs(np.fft.rfft(samples * np.hanning(FFT_SIZE))) / FFT_SIZE
    decibels = 20 * np.log10(magnitudes + 1e-12)
    scaled = (decibels - MIN_DECIBELS) / (MAX_DECIBELS - MIN_DECIBELS) * 255
    return [int(v) for v in np.clip(scaled, 0, 255)[:bands]]


class AudioRecorder:
    """麦克风录音器"""

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        stream_factory: Callable = None
    ):
        self.sample_rate = sample_rate
        self.channels = channels
        self.stream_factory = stream_factory or default_stream_factory

        self.is_recording = False
        self.error: Optional[str] = None

        self._stream = None
        self._chunks: List[np.ndarray] = []
        self._levels: List[int] = []
        self._lock = threading.Lock()
        self._started_at: Optional[float] = None

    def _on_audio(self, indata, frames, time_info, status):
        """sounddevice回调(在音频线程中执行)"""
        if status:
            logger.debug(f"Input stream status: {status}")
        chunk = np.array(indata, dtype=np.float32, copy=True)
        levels = compute_levels(chunk)
        with self._lock:
            self._chunks.append(chunk)
            self._levels = levels

    @property
    def levels(self) -> List[int]:
        """最近一个音频块的频段幅度"""
        with self._lock:
            return list(self._levels)

    @property
    def elapsed(self) -> float:
        """已录音时长(秒)"""
        if not self.is_recording or self._started_at is None:
            return 0.0
        return time.monotonic() - self._started_at

    def start_recording(self) -> bool:
        """开始录音，已在录音时不做任何事"""
        if self.is_recording:
            return True

        with self._lock:
            self._chunks = []
            self._levels = []

        try:
            self._stream = self.stream_factory(self.sample_rate, self.channels, self._on_audio)
            self._stream.start()
        except Exception as e:
            logger.error(f"无法打开麦克风: {e}")
            self.error = MICROPHONE_ERROR
            self._release()
            return False

        self.error = None
        self.is_recording = True
        self._started_at = time.monotonic()
        logger.info(f"开始录音 ({self.sample_rate}Hz, {self.channels}ch)")
        return True

    def stop_recording(self) -> RecordedAudio:
        """停止录音并返回WAV数据"""
        if self._stream is None:
            raise RuntimeError("Recorder is not recording")

        try:
            self._stream.stop()
        finally:
            self._release()

        with self._lock:
            chunks, self._chunks = self._chunks, []
            self._levels = []

        if chunks:
            samples = np.concatenate(chunks)
        else:
            samples = np.zeros((0, self.channels), dtype=np.float32)

        duration = len(samples) / float(self.sample_rate)
        logger.info(f"录音结束: {duration:.1f}s")
        return RecordedAudio(
            data=encode_wav(samples, self.sample_rate, self.channels),
            content_type="audio/wav",
            duration=duration,
            sample_rate=self.sample_rate
        )

    def _release(self):
        stream, self._stream = self._stream, None
        self.is_recording = False
        self._started_at = None
        if stream is not None:
            try:
                stream.close()
            except Exception as e:
                logger.warning(f"关闭输入流失败: {e}")

    def close(self):
        """释放麦克风"""
        if self._stream is not None:
            try:
                self._stream.stop()
            except Exception as e:
                logger.warning(f"停止输入流失败: {e}")
        self._release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
