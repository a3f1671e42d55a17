import re
from enum import Enum

from ..exceptions import ValidationError


class Mode(str, Enum):
    PHONE = "PH"
    FM = "FM"
    CW = "CW"
    RTTY = "RY"


# Checked in order; the first pattern that fully matches the token wins.
_CLASSIFIERS = [
    (re.compile(r"[ULS]SB?|PH(ONE)?|VOICE", re.IGNORECASE), Mode.PHONE),
    (re.compile(r"N?FM", re.IGNORECASE), Mode.FM),
    (re.compile(r"CW|MORSE", re.IGNORECASE), Mode.CW),
    (re.compile(r"RY|RTTY|RTY|RT", re.IGNORECASE), Mode.RTTY),
]


def classify_mode(value: str) -> Mode:
    if not value:
        raise ValidationError("mode required")
    t = value.strip()
    for pattern, mode in _CLASSIFIERS:
        if pattern.fullmatch(t):
            return mode
    raise ValidationError(f"unknown QSO mode: {value}")
