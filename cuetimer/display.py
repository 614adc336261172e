from typing import Protocol


class LcdLike(Protocol):
    def display(self, text: str) -> None: ...

    def setDigitCount(self, count: int) -> None: ...


def format_remaining(remaining_ms: int) -> str:
    return f"{max(0, int(remaining_ms)) / 1000:.2f}"


class LcdDisplaySink:
    """Renders remaining time as seconds with two decimals on a QLCDNumber."""

    MIN_DIGITS = 5

    def __init__(self, lcd: LcdLike):
        self.lcd = lcd
        self.last_text = ""

    def update(self, remaining_ms: int):
        text = format_remaining(remaining_ms)
        if text == self.last_text:
            return
        self.last_text = text
        self.lcd.setDigitCount(max(self.MIN_DIGITS, len(text)))
        self.lcd.display(text)
