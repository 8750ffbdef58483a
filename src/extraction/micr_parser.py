"""MICR line parsing for routing, account, and check numbers.

Works on the digit stream read from a check's magnetic-ink band. Every
non-digit becomes a separator, and the resulting digit runs are
assigned to fields by length, most specific first:

* routing number: a run of exactly 9 digits
* account number: a run of 6-18 digits
* check number: a run of 3-6 digits

A run claimed by one field is never reused by a later one, matching the
fixed, non-overlapping positions of the fields on a MICR line.
"""

import re
from dataclasses import dataclass

from src.utils.logger import get_logger

logger = get_logger(__name__)

_ABA_WEIGHTS = (3, 7, 1, 3, 7, 1, 3, 7, 1)

# (attribute, min_length, max_length), in extraction order.
_FIELD_RULES: tuple[tuple[str, int, int], ...] = (
    ("routing", 9, 9),
    ("account", 6, 18),
    ("check_number", 3, 6),
)


@dataclass(frozen=True)
class MicrFields:
    """Numeric fields parsed from a MICR digit stream."""

    routing: str = ""
    account: str = ""
    check_number: str = ""
    raw: str = ""
    routing_valid: bool = False

    @classmethod
    def combine(cls, results: list["MicrFields"]) -> "MicrFields":
        """Merge per-page results: first non-empty value wins per field."""
        routing = next((r.routing for r in results if r.routing), "")
        return cls(
            routing=routing,
            account=next((r.account for r in results if r.account), ""),
            check_number=next((r.check_number for r in results if r.check_number), ""),
            raw=" ".join(r.raw for r in results if r.raw),
            routing_valid=is_valid_aba(routing),
        )


def clean_micr_text(text: str) -> str:
    """Replace non-digits with spaces and collapse whitespace."""
    return re.sub(r"\s+", " ", re.sub(r"\D", " ", text or "")).strip()


def is_valid_aba(routing: str) -> bool:
    """Check an ABA routing number against its 3-7-1 checksum.

    Args:
        routing: Candidate routing number.

    Returns:
        True when ``routing`` is 9 digits with a weighted digit sum
        divisible by 10.
    """
    if len(routing) != 9 or not routing.isdigit():
        return False
    total = sum(int(d) * w for d, w in zip(routing, _ABA_WEIGHTS))
    return total % 10 == 0


def parse_micr(text: str) -> MicrFields:
    """Extract routing, account, and check numbers from MICR text.

    Args:
        text: Recognized MICR band text, possibly from several passes.

    Returns:
        Parsed fields; missing ones are empty strings. Parsing the same
        text again yields the same fields.
    """
    cleaned = clean_micr_text(text)
    tokens = cleaned.split(" ") if cleaned else []
    used: set[int] = set()
    values: dict[str, str] = {}

    for attr, low, high in _FIELD_RULES:
        values[attr] = ""
        for index, token in enumerate(tokens):
            if index not in used and low <= len(token) <= high:
                values[attr] = token
                used.add(index)
                break

    result = MicrFields(
        routing=values["routing"],
        account=values["account"],
        check_number=values["check_number"],
        raw=cleaned,
        routing_valid=is_valid_aba(values["routing"]),
    )
    if result.routing and not result.routing_valid:
        logger.debug("Routing number %s fails ABA checksum", result.routing)
    return result
