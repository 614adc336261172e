import pytest
from PySide6 import QtCore

from cuetimer import config
from cuetimer.config import (
    DEFAULT_VALUES,
    SettingsConfigProvider,
    StaticConfigProvider,
    read_alarm_config,
    read_cue,
    read_duration_ms,
)


class TestCoerce:
    @pytest.mark.parametrize("raw", ["abc", None, "", float("nan"), float("inf"), -5, [1]])
    def test_bad_numbers_fall_back(self, raw):
        assert config.coerce(config.DURATION, raw) == 60

    def test_numeric_strings(self):
        assert config.coerce(config.DURATION, " 90 ") == 90.0
        assert config.coerce(config.ALARM_OFFSET, "2.5") == 2.5

    def test_zero_frequency_falls_back(self):
        assert config.coerce(config.SOUND_ALARM_FREQ, 0) == 660

    def test_zero_duration_is_allowed(self):
        assert config.coerce(config.DURATION, 0) == 0
        assert config.coerce(config.SOUND_END_DUR, "0") == 0

    @pytest.mark.parametrize("raw, expected", [("true", True), ("off", False), (0, False), (1, True), (False, False)])
    def test_booleans(self, raw, expected):
        assert config.coerce(config.ALARM, raw) is expected

    def test_bad_boolean_falls_back(self):
        assert config.coerce(config.ALARM, "maybe") is True


class TestStaticProvider:
    def test_defaults(self):
        provider = StaticConfigProvider()
        for field, value in DEFAULT_VALUES.items():
            assert provider.get(field) == value

    def test_reads_are_live(self):
        provider = StaticConfigProvider()
        assert read_duration_ms(provider) == 60_000
        provider.set(config.DURATION, 5)
        assert read_duration_ms(provider) == 5_000

    def test_cues_default(self):
        provider = StaticConfigProvider()
        assert read_cue(provider, "start") == config.CueSpec(440, 100)
        assert read_cue(provider, "alarm") == config.CueSpec(660, 200)
        assert read_cue(provider, "end") == config.CueSpec(880, 400)

    def test_alarm_config(self):
        provider = StaticConfigProvider({config.ALARM: "false", config.ALARM_OFFSET: "3"})
        alarm = read_alarm_config(provider)
        assert alarm == config.AlarmConfig(alarm_enabled=False, alarm_offset_ms=3_000)

    def test_malformed_offset_uses_default(self):
        provider = StaticConfigProvider({config.ALARM_OFFSET: "ten"})
        assert read_alarm_config(provider).alarm_offset_ms == 10_000


class TestAlarmValidity:
    def test_offset_must_be_shorter_than_duration(self):
        alarm = config.AlarmConfig(alarm_enabled=True, alarm_offset_ms=10_000)
        assert alarm.is_valid_for(60_000)
        assert not alarm.is_valid_for(10_000)
        assert not alarm.is_valid_for(5_000)


class TestSettingsProvider:
    @pytest.fixture
    def settings(self, tmp_path):
        return QtCore.QSettings(str(tmp_path / "cuetimer.ini"), QtCore.QSettings.IniFormat)

    def test_missing_keys_use_defaults(self, settings):
        provider = SettingsConfigProvider(settings)
        assert provider.get(config.DURATION) == 60
        assert provider.get(config.ALARM) is True

    def test_round_trip_through_file(self, settings, tmp_path):
        provider = SettingsConfigProvider(settings)
        provider.set(config.DURATION, 90)
        provider.set(config.ALARM, False)
        settings.sync()

        reopened = SettingsConfigProvider(
            QtCore.QSettings(str(tmp_path / "cuetimer.ini"), QtCore.QSettings.IniFormat)
        )
        assert reopened.get(config.DURATION) == 90
        assert reopened.get(config.ALARM) is False

    def test_garbage_in_file_falls_back(self, settings):
        settings.setValue("config/sound_start_frequency", "loud")
        provider = SettingsConfigProvider(settings)
        assert provider.get(config.SOUND_START_FREQ) == 440


class TestMillisecondConversion:
    @pytest.mark.parametrize("seconds, expected", [(32.3, 32_300), (64.1, 64_100), ("64.6", 64_600), (0.001, 1)])
    def test_one_decimal_seconds_keep_every_millisecond(self, seconds, expected):
        provider = StaticConfigProvider({config.DURATION: seconds, config.ALARM_OFFSET: seconds})
        assert read_duration_ms(provider) == expected
        assert read_alarm_config(provider).alarm_offset_ms == expected

    def test_cue_duration_rounds(self):
        provider = StaticConfigProvider({config.SOUND_END_DUR: "99.6"})
        assert read_cue(provider, "end").duration_ms == 100

    @pytest.mark.parametrize("raw", [1e306, "1e306", 1.7e308])
    def test_values_too_large_for_milliseconds_fall_back(self, raw):
        provider = StaticConfigProvider({config.DURATION: raw, config.ALARM_OFFSET: raw})
        assert read_duration_ms(provider) == 60_000
        assert read_alarm_config(provider).alarm_offset_ms == 10_000
