import re
from datetime import timedelta


DURATION_PATTERN = re.compile(
    r"(?P<val>\d+(?:\.\d+)?)(?P<unit>ms|[smhdw])",
    flags=re.I,
)


class TimeParser:
    def __init__(self) -> None:
        self._units = {
            "ms": "milliseconds",
            "s": "seconds",
            "m": "minutes",
            "h": "hours",
            "d": "days",
            "w": "weeks",
        }

    def parse(self, time_amount: str | int | float) -> float:
        """
        Convert ``"250ms"``, ``"5s"``, ``"1m30s"`` or a bare number of
        seconds to seconds. Anything else raises ``ValueError``.
        """
        if isinstance(time_amount, (int, float)):
            return float(time_amount)

        text = time_amount.strip()
        if re.fullmatch(r"\d+(?:\.\d+)?", text):
            return float(text)

        if not text or DURATION_PATTERN.sub("", text) != "":
            raise ValueError(f"Invalid duration {time_amount!r}")

        durations: dict[str, float] = {}
        for match in DURATION_PATTERN.finditer(text):
            unit = self._units[match.group("unit").lower()]
            durations[unit] = durations.get(unit, 0.0) + float(match.group("val"))

        return timedelta(**durations).total_seconds()
