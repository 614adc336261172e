import logging
from typing import Callable

from PySide6 import QtCore, QtMultimedia
from PySide6.QtMultimedia import QAudioFormat, QAudioSink, QMediaDevices

from .audio import SAMPLE_RATE, AudioEngine, AudioEngineError

logger = logging.getLogger(__name__)

# Qt 6.7 renamed the QAudio namespace to QtAudio
QAudio = getattr(QtMultimedia, "QtAudio", None) or QtMultimedia.QAudio

_LIVE_STATES = (QAudio.State.ActiveState, QAudio.State.IdleState)
_BYTES_PER_FRAME = 2  # mono Int16


class ToneStream(QtCore.QIODevice):
    """Pull-mode source for QAudioSink: renders whatever voices the engine holds.

    Returns no data while nothing is sounding, which lets the sink drop to
    IdleState the way a browser audio context idles out.
    """

    def __init__(self, engine: "QtAudioEngine"):
        super().__init__()
        self.engine = engine

    def readData(self, maxlen: int) -> bytes:
        frames = int(maxlen) // _BYTES_PER_FRAME
        block = self.engine.mix(frames)
        if block is None:
            return b""
        return (block * 32767.0).astype("<i2").tobytes()

    def writeData(self, data) -> int:
        return 0

    def bytesAvailable(self) -> int:
        # pull mode: always willing to render another block
        return 4096 + super().bytesAvailable()

    def isSequential(self) -> bool:
        return True


class QtAudioEngine(AudioEngine):
    def __init__(self, parent: QtCore.QObject | None = None, sample_rate: int = SAMPLE_RATE):
        super().__init__(sample_rate)
        self._parent = parent
        self._sink: QAudioSink | None = None
        self._stream: ToneStream | None = None
        self._waiters: list[Callable[[], None]] = []

    @property
    def ready(self) -> bool:
        return self._sink is not None and self._sink.state() in _LIVE_STATES

    def _open(self):
        device = QMediaDevices.defaultAudioOutput()
        if device.isNull():
            raise AudioEngineError("no audio output device")

        fmt = QAudioFormat()
        fmt.setSampleRate(self.sample_rate)
        fmt.setChannelCount(1)
        fmt.setSampleFormat(QAudioFormat.SampleFormat.Int16)
        if not device.isFormatSupported(fmt):
            raise AudioEngineError(f"{device.description()} does not accept mono Int16 @ {self.sample_rate} Hz")

        self._stream = ToneStream(self)
        self._stream.open(QtCore.QIODevice.OpenModeFlag.ReadOnly)
        self._sink = QAudioSink(device, fmt, self._parent)
        self._sink.stateChanged.connect(self._on_state_changed)
        logger.info(f"Audio output: {device.description()} @ {self.sample_rate} Hz")

    def resume(self, on_ready: Callable[[], None]) -> bool:
        if self._sink is None:
            self._open()

        state = self._sink.state()
        if state in _LIVE_STATES:
            return True
        if state == QAudio.State.SuspendedState:
            self._sink.resume()
        else:
            self._sink.start(self._stream)

        if self._sink.state() in _LIVE_STATES:
            return True
        if self._sink.error() != QAudio.Error.NoError:
            raise AudioEngineError(f"audio output failed to start: {self._sink.error()}")

        self._waiters.append(on_ready)
        return False

    def _on_state_changed(self, state):
        if state in _LIVE_STATES:
            waiters, self._waiters = self._waiters, []
            for cb in waiters:
                cb()
        elif state == QAudio.State.StoppedState and self._sink is not None:
            if self._sink.error() != QAudio.Error.NoError:
                logger.warning(f"Audio output stopped: {self._sink.error()}")

    def close(self):
        super().close()
        self._waiters.clear()
        if self._sink is not None:
            self._sink.stop()
            self._sink = None
        if self._stream is not None:
            self._stream.close()
            self._stream = None
