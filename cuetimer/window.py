from PySide6 import QtCore, QtGui, QtWidgets

from . import config
from .audio import AudioEngineError
from .clock import MonotonicClock
from .config import SettingsConfigProvider
from .countdown import TIMER_REFRESH_INTERVAL_MS, Countdown
from .cues import CueScheduler
from .display import LcdDisplaySink
from .qt_audio import QtAudioEngine
from .tasks import QtTaskScheduler

START_KEY = QtCore.Qt.Key_Space


# -----------------------------
# Timer display
# -----------------------------
class TimerLcd(QtWidgets.QLCDNumber):
    clicked = QtCore.Signal()

    BASE_HEIGHT_PX = 16

    def __init__(self):
        super().__init__()
        self.setSegmentStyle(QtWidgets.QLCDNumber.Flat)
        self.setSmallDecimalPoint(True)
        self.setDigitCount(LcdDisplaySink.MIN_DIGITS)
        self.setStyleSheet("QLCDNumber { background: transparent; color: #33ff66; border: none; }")
        self.setCursor(QtCore.Qt.PointingHandCursor)
        self.setToolTip("Click or press Space to start")

    def set_scale(self, em: float):
        self.setMinimumHeight(int(round(self.BASE_HEIGHT_PX * float(em))))

    def mousePressEvent(self, event: QtGui.QMouseEvent):
        if event.button() == QtCore.Qt.LeftButton:
            self.clicked.emit()
            event.accept()
            return
        super().mousePressEvent(event)


# field -> (minimum, maximum, decimals, suffix)
_FIELD_RANGES = {
    config.DURATION: (0, 86400, 1, " s"),
    config.ALARM_OFFSET: (0, 86400, 1, " s"),
    config.SOUND_START_FREQ: (1, 20000, 0, " Hz"),
    config.SOUND_START_DUR: (0, 10000, 0, " ms"),
    config.SOUND_ALARM_FREQ: (1, 20000, 0, " Hz"),
    config.SOUND_ALARM_DUR: (0, 10000, 0, " ms"),
    config.SOUND_END_FREQ: (1, 20000, 0, " Hz"),
    config.SOUND_END_DUR: (0, 10000, 0, " ms"),
    config.TIMER_SIZE: (1, 40, 1, " em"),
}

_SETTINGS_ROWS = [
    ("Duration", [config.DURATION]),
    ("Alarm before end", [config.ALARM_OFFSET]),
    ("Start tone", [config.SOUND_START_FREQ, config.SOUND_START_DUR]),
    ("Alarm tone", [config.SOUND_ALARM_FREQ, config.SOUND_ALARM_DUR]),
    ("End tone", [config.SOUND_END_FREQ, config.SOUND_END_DUR]),
    ("Timer size", [config.TIMER_SIZE]),
]


# -----------------------------
# Main UI
# -----------------------------
class MainWindow(QtWidgets.QMainWindow):
    ORG_NAME = "CueTimer"
    APP_NAME = "Cue Timer"

    def __init__(self, settings: QtCore.QSettings | None = None):
        super().__init__()

        self.settings = settings if settings is not None else QtCore.QSettings(self.ORG_NAME, self.APP_NAME)
        self.provider = SettingsConfigProvider(self.settings)

        self.setWindowTitle("cue timer")
        self.resize(760, 320)
        self.setMinimumSize(560, 260)
        self.setStyleSheet(
            """
            QMainWindow { background: #c0c0c0; }

            QFrame#settingsPanel, QFrame#timerPanel {
                background: #dcdcdc;
                border: 2px solid #808080;
                border-radius: 8px;
            }

            QLabel { color: #000; }

            QDoubleSpinBox {
                color: #000;
                background: #fff;
                border: 2px inset #a9a9a9;
                padding: 2px 4px;
                min-height: 22px;
            }
            """
        )

        central = QtWidgets.QWidget()
        self.setCentralWidget(central)
        root = QtWidgets.QHBoxLayout(central)
        root.setContentsMargins(8, 8, 8, 8)
        root.setSpacing(8)

        # -------- Left panel --------
        settings_panel = QtWidgets.QFrame()
        settings_panel.setObjectName("settingsPanel")
        settings_panel.setMinimumWidth(280)
        root.addWidget(settings_panel, 0)

        grid = QtWidgets.QGridLayout(settings_panel)
        grid.setContentsMargins(14, 10, 14, 10)
        grid.setHorizontalSpacing(10)
        grid.setVerticalSpacing(4)

        self.editors: dict[str, QtWidgets.QDoubleSpinBox] = {}
        row = 0
        for label, fields in _SETTINGS_ROWS:
            grid.addWidget(QtWidgets.QLabel(label), row, 0)
            for col, field in enumerate(fields, start=1):
                grid.addWidget(self._make_editor(field), row, col)
            row += 1

        # alarm toggle sits beside the offset it enables
        self.alarm_chk = QtWidgets.QCheckBox("Alarm")
        self.alarm_chk.setFocusPolicy(QtCore.Qt.ClickFocus)
        self.alarm_chk.setChecked(bool(self.provider.get(config.ALARM)))
        self.alarm_chk.toggled.connect(lambda checked: self._on_field_changed(config.ALARM, checked))
        grid.addWidget(self.alarm_chk, 1, 2)
        grid.setRowStretch(row, 1)

        # -------- Right panel --------
        timer_panel = QtWidgets.QFrame()
        timer_panel.setObjectName("timerPanel")
        root.addWidget(timer_panel, 1)

        t_layout = QtWidgets.QVBoxLayout(timer_panel)
        t_layout.setContentsMargins(14, 10, 14, 10)

        self.timer_box = QtWidgets.QFrame()
        self.timer_box.setStyleSheet(
            """
            QFrame {
                background: #000;
                border: 2px inset #3a3a3a;
                border-radius: 10px;
            }
            """
        )
        box_layout = QtWidgets.QVBoxLayout(self.timer_box)
        box_layout.setContentsMargins(14, 14, 14, 14)

        self.timer_display = TimerLcd()
        self.timer_display.set_scale(self.provider.get(config.TIMER_SIZE))
        self.timer_display.clicked.connect(self.start_countdown)
        box_layout.addWidget(self.timer_display, 1)
        t_layout.addWidget(self.timer_box, 1)

        # -------- Engine --------
        self.audio = QtAudioEngine(self)
        self.cues = CueScheduler(self.audio, QtTaskScheduler(self))
        self.cues.add_failure_listener(self._on_audio_failed)
        self.countdown = Countdown(
            MonotonicClock(),
            self.provider,
            self.cues,
            display=LcdDisplaySink(self.timer_display),
        )

        self._start_key_held = False
        QtWidgets.QApplication.instance().installEventFilter(self)

        geo = self.settings.value("main/geometry", None)
        if isinstance(geo, QtCore.QByteArray):
            self.restoreGeometry(geo)

        self.ui_timer = QtCore.QTimer(self)
        self.ui_timer.setTimerType(QtCore.Qt.PreciseTimer)
        self.ui_timer.timeout.connect(self._tick_ui)
        self.ui_timer.start(int(round(TIMER_REFRESH_INTERVAL_MS)))
        self._tick_ui()

    def _make_editor(self, field: str) -> QtWidgets.QDoubleSpinBox:
        lo, hi, decimals, suffix = _FIELD_RANGES[field]
        spin = QtWidgets.QDoubleSpinBox()
        spin.setRange(lo, hi)
        spin.setDecimals(decimals)
        spin.setSuffix(suffix)
        spin.setFocusPolicy(QtCore.Qt.ClickFocus)
        spin.setValue(float(self.provider.get(field)))
        spin.valueChanged.connect(lambda value, f=field: self._on_field_changed(f, value))
        self.editors[field] = spin
        return spin

    # ---------------- Handlers ----------------
    def start_countdown(self):
        self.countdown.start()

    def _on_field_changed(self, field: str, value):
        self.provider.set(field, value)
        if field == config.TIMER_SIZE:
            self.timer_display.set_scale(self.provider.get(config.TIMER_SIZE))

    def _on_audio_failed(self, exc: AudioEngineError):
        self.statusBar().showMessage("Sound unavailable - click or press Space to retry", 5000)

    def eventFilter(self, obj: QtCore.QObject, event: QtCore.QEvent) -> bool:
        etype = event.type()
        if etype in (QtCore.QEvent.KeyPress, QtCore.QEvent.KeyRelease) and event.key() == START_KEY:
            if event.isAutoRepeat():
                return True
            if etype == QtCore.QEvent.KeyPress:
                if not self._start_key_held:
                    self._start_key_held = True
                    self.start_countdown()
            else:
                self._start_key_held = False
            return True
        return super().eventFilter(obj, event)

    def _tick_ui(self):
        self.countdown.refresh()

    def closeEvent(self, event: QtGui.QCloseEvent):
        self.ui_timer.stop()
        QtWidgets.QApplication.instance().removeEventFilter(self)
        self.settings.setValue("main/geometry", self.saveGeometry())
        self.settings.sync()
        self.countdown.close()
        self.audio.close()
        super().closeEvent(event)
