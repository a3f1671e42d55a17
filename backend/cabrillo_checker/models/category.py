"""Operating-category vocabularies and the per-station category profile."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Type, TypeVar, Union

from ..exceptions import ValidationError


class OperatorCount(str, Enum):
    SINGLE = "single"
    MULTI = "multi"
    CHECKLOG = "checklog"


class Power(str, Enum):
    QRP = "qrp"
    LOW = "low"
    HIGH = "high"


class TransmitterCount(str, Enum):
    ONE = "one"
    UNLIMITED = "unlimited"
    SWL = "swl"


class StationType(str, Enum):
    FIXED = "fixed"
    MOBILE = "mobile"
    PORTABLE = "portable"
    ROVER = "rover"
    EXPEDITION = "expedition"
    HQ = "hq"
    SCHOOL = "school"


E = TypeVar("E", bound=Enum)


def _coerce(enum_cls: Type[E], value: Union[E, str, None], name: str) -> Optional[E]:
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"{value!r} is not an allowed value for {name}") from None


def power_from_watts(watts: int) -> Power:
    """Bucket a transmitter power given in watts."""
    if watts <= 5:
        return Power.QRP
    if watts <= 200:
        return Power.LOW
    return Power.HIGH


class CategoryProfile:
    """Self-reported or corrected operating class of the submitting station.

    Enumerated fields accept either the enum member or its string value and
    raise ``ValidationError`` for anything outside the vocabulary.
    """

    def __init__(self) -> None:
        self._assisted: Optional[bool] = None
        self._operator_count: Optional[OperatorCount] = None
        self._power: Optional[Power] = None
        self._transmitter_count: Optional[TransmitterCount] = None
        self._station_type: Optional[StationType] = None
        self.email: Optional[str] = None
        self.phone: Optional[str] = None
        self.comment: Optional[str] = None
        self.sent_location: Optional[str] = None

    @property
    def assisted(self) -> Optional[bool]:
        return self._assisted

    @assisted.setter
    def assisted(self, value: Optional[bool]) -> None:
        self._assisted = None if value is None else bool(value)

    @property
    def operator_count(self) -> Optional[OperatorCount]:
        return self._operator_count

    @operator_count.setter
    def operator_count(self, value: Union[OperatorCount, str, None]) -> None:
        self._operator_count = _coerce(OperatorCount, value, "operator count")

    @property
    def power(self) -> Optional[Power]:
        return self._power

    @power.setter
    def power(self, value: Union[Power, str, None]) -> None:
        self._power = _coerce(Power, value, "power")

    @property
    def transmitter_count(self) -> Optional[TransmitterCount]:
        return self._transmitter_count

    @transmitter_count.setter
    def transmitter_count(self, value: Union[TransmitterCount, str, None]) -> None:
        self._transmitter_count = _coerce(TransmitterCount, value, "transmitter count")

    @property
    def station_type(self) -> Optional[StationType]:
        return self._station_type

    @station_type.setter
    def station_type(self, value: Union[StationType, str, None]) -> None:
        self._station_type = _coerce(StationType, value, "station type")

    def consistent(self, other: CategoryProfile) -> bool:
        """True when no field is declared by both profiles with different values."""
        for name in ("assisted", "operator_count", "power", "transmitter_count"):
            mine = getattr(self, name)
            theirs = getattr(other, name)
            if mine is not None and theirs is not None and mine != theirs:
                return False
        return True

    def conflicted(self, other: CategoryProfile) -> bool:
        return not self.consistent(other)

    def __repr__(self) -> str:
        return (
            f"CategoryProfile(assisted={self._assisted!r}, operator_count={self._operator_count!r}, "
            f"power={self._power!r}, transmitter_count={self._transmitter_count!r}, "
            f"station_type={self._station_type!r})"
        )
