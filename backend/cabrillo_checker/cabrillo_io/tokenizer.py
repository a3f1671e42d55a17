"""Split raw Cabrillo text into logical records.

Free-text header values (SOAPBOX, ADDRESS and friends) sometimes wrap onto
several physical lines, so a line break only ends a record when the next
line opens with a ``TAG:`` prefix or nothing but whitespace follows.
"""

from __future__ import annotations

import re
from typing import List

from ..exceptions import FileProcessingError

END_OF_RECORD = re.compile(
    r"(\r\n?|\n\r?)(?=[a-z]+(?:-(?:[a-z]+\d*|\d+))*:|[ \t]*\Z)", re.IGNORECASE
)

UNPRINTABLE = re.compile(r"[\x00-\x08\x0b\x0e\x0f\x10\x12-\x1f\x7f]")
ADIF_MARKER = re.compile(r"<eo[rh]>", re.IGNORECASE)
START_OF_LOG = re.compile(r"^start-of-log:", re.IGNORECASE | re.MULTILINE)

# Five or more end-of-record/end-of-header markers means ADIF, not Cabrillo
ADIF_MARKER_LIMIT = 5


def pretreat(content: str, source: str = "<string>") -> str:
    """Reject non-Cabrillo input and strip junk some loggers prepend.

    Raises:
        FileProcessingError: the content looks binary or like an ADIF file.
    """

    if content and len(UNPRINTABLE.findall(content)) * 15 >= len(content):
        raise FileProcessingError(f"File {source} appears to be binary")
    content = content.replace("\x00", " ")
    if len(ADIF_MARKER.findall(content)) >= ADIF_MARKER_LIMIT:
        raise FileProcessingError(f"File {source} appears to be ADIF")
    starts = list(START_OF_LOG.finditer(content))
    if len(starts) == 1:
        content = "START-OF-LOG:" + content[starts[0].end():]
    return content


def split_records(content: str) -> List[str]:
    """Return the logical records of ``content`` in file order.

    Empty pieces between separators are dropped.
    """

    records: List[str] = []
    start = 0
    for m in END_OF_RECORD.finditer(content):
        if m.start() > start:
            records.append(content[start:m.start()])
        start = m.end()
    if start < len(content):
        records.append(content[start:])
    return records


def tokenize(content: str, source: str = "<string>") -> List[str]:
    return split_records(pretreat(content, source))
