from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field


class ExchangeModel(BaseModel):
    callsign: Optional[str] = Field(None, description="Callsign as logged")
    serial: Optional[int] = Field(None, description="Serial number")
    serial_leading_zero: Optional[bool] = Field(None, description="Serial was written zero-padded")
    location_raw: Optional[str] = Field(None, description="Location token as logged, normalized")
    location: Optional[str] = Field(None, description="Canonical multiplier abbreviation")


class QSOModel(BaseModel):
    freq_khz: int
    mode: str = Field(..., description="Canonical mode: PH, FM, CW or RY")
    mode_original: str
    when: datetime
    sent: ExchangeModel
    received: ExchangeModel
    transceiver: Optional[int] = None
    annotations: Dict[str, Union[bool, int, str]] = Field(default_factory=dict)


class CabrilloCheckResultModel(BaseModel):
    filename: str
    callsign: Optional[str]
    clean_parse: bool
    conflicted: bool = Field(..., description="Corrected and self-reported categories disagree")
    operating_class: str
    assisted: str
    operator: str
    power: str
    transmitter: str
    email: Optional[str] = None
    special_categories: List[str] = Field(default_factory=list)
    total_qsos: int
    bad_sent_multipliers: List[str] = Field(default_factory=list)
    bad_received_multipliers: List[str] = Field(default_factory=list)
    diagnostics: List[str] = Field(default_factory=list)
    qsos: List[QSOModel] = Field(default_factory=list)
