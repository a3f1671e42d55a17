import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Optional, Union

from .exchange import Exchange
from .mode import Mode, classify_mode

AnnotationValue = Union[bool, int, str]

# Keys with a fixed type; anything else is kept as a string.
ANNOTATION_COERCIONS: Dict[str, Callable[[str], AnnotationValue]] = {
    "DUPE": lambda v: v == "D",
    "Err_NIL": lambda v: v == "1",
    "Err_unique": lambda v: v == "1",
    "Err_nr": lambda v: int(v) if v.lstrip("-").isdigit() else 0,
}

_ANNOTATION_RE = re.compile(r"([A-Z][A-Z_]*)\s*=\s*([^;]*);", re.IGNORECASE)
_WS_RUN_RE = re.compile(r"\s{2,}")


def parse_annotations(text: str) -> Dict[str, AnnotationValue]:
    """Extract ``KEY = value;`` pairs from a trailing annotation block."""
    result: Dict[str, AnnotationValue] = {}
    for key, raw in _ANNOTATION_RE.findall(text):
        value = _WS_RUN_RE.sub(" ", raw.strip())
        if not value:
            continue
        coerce = ANNOTATION_COERCIONS.get(key)
        result[key] = coerce(value) if coerce else value
    return result


@dataclass
class QSO:
    freq_khz: int
    when: datetime  # UTC
    mode: Mode = Mode.CW
    mode_original: str = "CW"
    sent: Exchange = field(default_factory=Exchange)
    received: Exchange = field(default_factory=Exchange)
    transceiver: Optional[int] = None
    annotations: Dict[str, AnnotationValue] = field(default_factory=dict)

    def set_mode(self, text: str) -> None:
        """Classify ``text`` and keep the operator's spelling alongside."""
        self.mode = classify_mode(text)
        self.mode_original = text.strip().upper()

    def to_cabrillo_line(self) -> str:
        line = "QSO: %5d %2s %4d-%02d-%02d %04d " % (
            self.freq_khz,
            self.mode.value,
            self.when.year,
            self.when.month,
            self.when.day,
            self.when.hour * 100 + self.when.minute,
        )
        line += self.sent.format() + " " + self.received.format()
        if self.transceiver is not None:
            line += " " + str(self.transceiver)
        return line.rstrip()
