"""
Census text normalization.

Responsibilities:
- decode uploaded bytes into text (encoding detection + newline normalization)
- header normalization onto the canonical census schema
- positional row mapping

Delimited-text parsing is deliberately simple: one reserved delimiter, no
quoting. Rows are never rejected here; validity is the scoring engine's job.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Tuple

from charset_normalizer import from_bytes

from .models import CensusRecord
from .rules import CENSUS_DELIMITER

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]")

# Ordered (predicate, canonical field) pairs; first match wins.
HEADER_RULES: List[Tuple[Callable[[str], bool], str]] = [
    (lambda key: "id" in key, "employee_id"),
    (lambda key: "annualsalary" in key or key == "salary", "annual_salary"),
    (lambda key: "dob" in key or "birth" in key, "dob"),
    (lambda key: "status" in key, "employment_status"),
    (lambda key: "hiredate" in key, "hire_date"),
    (lambda key: "basic" in key, "basic_life_coverage"),
    (lambda key: "voluntary" in key or "supp" in key, "voluntary_life_multiple"),
    (lambda key: "dependent" in key, "dependent_elections"),
]


class CensusReadError(ValueError):
    """Raised when uploaded bytes cannot be turned into census text."""


def normalize_header_key(header: str) -> str:
    return _NON_ALNUM.sub("", header.strip().lower())


def canonical_field(header: str) -> str:
    """
    Resolve a raw header token to its canonical field name.

    Headers that match no rule keep their normalized key.
    """
    key = normalize_header_key(header)
    for matches, field_name in HEADER_RULES:
        if matches(key):
            return field_name
    return key


def parse_census_text(text: str, delimiter: str = CENSUS_DELIMITER) -> List[CensusRecord]:
    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        return []

    fields = [canonical_field(header) for header in lines[0].split(delimiter)]

    records: List[CensusRecord] = []
    for line in lines[1:]:
        values = line.split(delimiter)
        row: Dict[str, str] = {}
        # zip() stops at the shorter side: short rows leave fields absent,
        # long rows drop their extras.
        for field_name, value in zip(fields, values):
            row[field_name] = value.strip()
        records.append(CensusRecord.model_validate(row))

    logger.debug("parsed census text: columns=%d rows=%d", len(fields), len(records))
    return records


def decode_census_bytes(raw: bytes) -> str:
    """
    Decode uploaded census bytes to text with LF newlines.

    Rules:
    - Detect encoding best-effort via charset-normalizer.
    - A UTF-8 BOM is dropped.
    - Content with no plausible text encoding (binary, spreadsheets) raises
      CensusReadError.
    """
    if not raw:
        return ""

    match = from_bytes(raw).best()
    if match is None:
        raise CensusReadError("no text encoding detected")

    decode_used = match.encoding
    if raw.startswith(b"\xef\xbb\xbf") and decode_used.lower().replace("-", "_") in ("utf_8", "utf8"):
        decode_used = "utf-8-sig"

    try:
        text = raw.decode(decode_used)
    except (UnicodeDecodeError, LookupError) as exc:
        raise CensusReadError(f"cannot decode as {decode_used}") from exc

    if "\x00" in text:
        raise CensusReadError("binary content")

    return text.replace("\r\n", "\n").replace("\r", "\n")
