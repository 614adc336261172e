import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from PySide6 import QtCore

logger = logging.getLogger(__name__)


# -----------------------------
# Fields + documented fallbacks
# -----------------------------
DURATION = "duration"  # s
TIMER_SIZE = "timer_size"  # em, display only
ALARM = "alarm"
ALARM_OFFSET = "alarm_duration"  # s before the end
SOUND_START_FREQ = "sound_start_frequency"  # Hz
SOUND_START_DUR = "sound_start_duration"  # ms
SOUND_ALARM_FREQ = "sound_alarm_frequency"
SOUND_ALARM_DUR = "sound_alarm_duration"
SOUND_END_FREQ = "sound_end_frequency"
SOUND_END_DUR = "sound_end_duration"

DEFAULT_VALUES: dict[str, Any] = {
    DURATION: 60,
    TIMER_SIZE: 8,
    ALARM: True,
    ALARM_OFFSET: 10,
    SOUND_START_FREQ: 440,
    SOUND_START_DUR: 100,
    SOUND_ALARM_FREQ: 660,
    SOUND_ALARM_DUR: 200,
    SOUND_END_FREQ: 880,
    SOUND_END_DUR: 400,
}

# zero is as bad as negative for these
_POSITIVE_FIELDS = {SOUND_START_FREQ, SOUND_ALARM_FREQ, SOUND_END_FREQ, TIMER_SIZE}


def coerce(field: str, raw: Any) -> Any:
    """Turn a raw stored/edited value into the field's type, or its default."""
    default = DEFAULT_VALUES[field]

    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str):
            text = raw.strip().lower()
            if text in ("1", "true", "yes", "on"):
                return True
            if text in ("0", "false", "no", "off"):
                return False
        elif isinstance(raw, (int, float)):
            return bool(raw)
        logger.debug(f"Bad value {raw!r} for {field}, using default {default!r}")
        return default

    try:
        val = float(raw.strip() if isinstance(raw, str) else raw)
    except (TypeError, ValueError):
        val = math.nan

    # seconds become milliseconds downstream, so the scaled value must stay finite too
    if not math.isfinite(val * 1000) or val < 0 or (field in _POSITIVE_FIELDS and val == 0):
        logger.debug(f"Bad value {raw!r} for {field}, using default {default!r}")
        return default
    return val


class ConfigProvider(Protocol):
    def get(self, field: str) -> Any: ...


class StaticConfigProvider:
    """In-memory provider; missing or malformed entries fall back to defaults."""

    def __init__(self, values: Mapping[str, Any] | None = None):
        self.values: dict[str, Any] = dict(values or {})

    def get(self, field: str) -> Any:
        if field not in self.values:
            return DEFAULT_VALUES[field]
        return coerce(field, self.values[field])

    def set(self, field: str, value: Any):
        self.values[field] = value


class SettingsConfigProvider:
    """QSettings-backed provider. Values are read on every call, never cached."""

    GROUP = "config"

    def __init__(self, settings: QtCore.QSettings):
        self.settings = settings

    def _key(self, field: str) -> str:
        return f"{self.GROUP}/{field}"

    def get(self, field: str) -> Any:
        if not self.settings.contains(self._key(field)):
            return DEFAULT_VALUES[field]
        return coerce(field, self.settings.value(self._key(field)))

    def set(self, field: str, value: Any):
        self.settings.setValue(self._key(field), value)


# -----------------------------
# Derived per-refresh values
# -----------------------------
@dataclass(frozen=True)
class AlarmConfig:
    alarm_enabled: bool
    alarm_offset_ms: int

    def is_valid_for(self, target_duration_ms: int) -> bool:
        return self.alarm_offset_ms < target_duration_ms


@dataclass(frozen=True)
class CueSpec:
    frequency_hz: float
    duration_ms: int


_CUE_FIELDS = {
    "start": (SOUND_START_FREQ, SOUND_START_DUR),
    "alarm": (SOUND_ALARM_FREQ, SOUND_ALARM_DUR),
    "end": (SOUND_END_FREQ, SOUND_END_DUR),
}


def _seconds_to_ms(seconds: Any) -> int:
    # 32.3 * 1000 is 32299.999...; round before dropping the fraction
    return int(round(float(seconds) * 1000))


def read_duration_ms(provider: ConfigProvider) -> int:
    return _seconds_to_ms(provider.get(DURATION))


def read_alarm_config(provider: ConfigProvider) -> AlarmConfig:
    return AlarmConfig(
        alarm_enabled=bool(provider.get(ALARM)),
        alarm_offset_ms=_seconds_to_ms(provider.get(ALARM_OFFSET)),
    )


def read_cue(provider: ConfigProvider, kind: str) -> CueSpec:
    freq_field, dur_field = _CUE_FIELDS[kind]
    return CueSpec(
        frequency_hz=float(provider.get(freq_field)),
        duration_ms=int(round(float(provider.get(dur_field)))),
    )
