"""Pattern-based synthesis of banking fields from page text.

Each field has an ordered list of regular expressions. Lower priority
numbers run first: exact, organization-specific phrases come before
labelled forms, which come before broad generic fallbacks. The first
pattern that matches decides the field.

Numeric fields missing from the text are then filled from the MICR
line, and free-text fields are uppercased for storage.
"""

import re
from dataclasses import dataclass, field

from src.utils.config import PatternConfig
from src.utils.logger import get_logger

from .micr_parser import MicrFields
from .record import (
    FIELD_NAMES,
    MICR_FIELDS,
    UPPERCASE_FIELDS,
    ExtractedRecord,
    utc_timestamp,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class FieldPattern:
    """One entry of the pattern table."""

    field: str
    pattern: str
    priority: int
    flags: int = 0
    group: int = 0
    # Broad pattern that must not take values claimed by other fields.
    fallback: bool = False
    regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.field not in FIELD_NAMES:
            raise ValueError(f"Unknown field for pattern: {self.field}")
        object.__setattr__(self, "regex", re.compile(self.pattern, self.flags))

    def search(self, text: str, exclude: frozenset[str] = frozenset()) -> str:
        """Return the first non-empty match not listed in ``exclude``."""
        for match in self.regex.finditer(text):
            value = match.group(self.group).strip()
            if value and value not in exclude:
                return value
        return ""


# Words that end a captured name rather than belong to it.
_STOP = r"(?!(?:A/C|AC|ACCT|ACCOUNT|IFSC|BANK|BRANCH|MICR|DATE|PAY|CHECK|CHEQUE|NO)\b)"
_WORD = rf"{_STOP}[A-Z][A-Z&']*\b"
_NAME = rf"{_WORD}(?:\s+{_WORD}){{0,4}}"

_KNOWN_BANKS = (
    r"STATE\s+BANK\s+OF\s+INDIA|PUNJAB\s+NATIONAL\s+BANK|BANK\s+OF\s+BARODA"
    r"|HDFC\s+BANK|ICICI\s+BANK|AXIS\s+BANK|KOTAK\s+MAHINDRA\s+BANK"
    r"|BANK\s+OF\s+AMERICA|WELLS\s+FARGO\s+BANK|JPMORGAN\s+CHASE\s+BANK"
    r"|CITIBANK|U\.?S\.?\s+BANK"
)

DEFAULT_PATTERNS: tuple[FieldPattern, ...] = (
    # Account holder
    FieldPattern("account_name", rf"(?i:A/C|ACCOUNT)\s*(?i:HOLDER\s*)?(?i:NAME)\s*[:\-]?\s*({_NAME})", 10, group=1),
    FieldPattern("account_name", r"THE\s+CANTER\s+GROUP\s+LL[CG6]", 20, re.IGNORECASE),
    FieldPattern("account_name", rf"\b(?:MR|MRS|MS|DR|SHRI|SMT)\.?\s+{_NAME}", 30),
    FieldPattern("account_name", r"THE\s+[A-Z\s]{5,30}\s+LL[CG6]", 40, re.IGNORECASE),
    # Account number
    FieldPattern(
        "account_number",
        r"\b(?:A/C|ACCT|ACCOUNT)\.?\s*(?:NO\.?|NUMBER|NUM|#)?\s*[:#\-]?\s*(\d{6,18})\b",
        10,
        re.IGNORECASE,
        group=1,
    ),
    FieldPattern("account_number", r"\b\d{8,18}\b", 20, fallback=True),
    # Routing number
    FieldPattern(
        "routing_number",
        r"\b(?:ROUTING|ABA|RTN|R/T)\s*(?:NO\.?|NUMBER|#)?\s*[:#\-]?\s*(\d{9})\b",
        10,
        re.IGNORECASE,
        group=1,
    ),
    # Check number
    FieldPattern(
        "check_number",
        r"\b(?:CHECK|CHEQUE|CHQ)\s*(?:NO\.?|NUMBER|#)?\s*[:#\-]?\s*(\d{3,6})\b",
        10,
        re.IGNORECASE,
        group=1,
    ),
    # IFSC
    FieldPattern("ifsc", r"(?i:IFSC)(?:\s*(?i:CODE))?\s*[:\-]?\s*([A-Z]{4}0[A-Z0-9]{6})\b", 10, group=1),
    FieldPattern("ifsc", r"\b[A-Z]{4}0[A-Z0-9]{6}\b", 20),
    # Bank name
    FieldPattern("bank_name", r"CALPRIVATE\s+BANK", 10, re.IGNORECASE),
    FieldPattern("bank_name", rf"\b(?:{_KNOWN_BANKS})\b", 15, re.IGNORECASE),
    FieldPattern("bank_name", rf"(?i:BANK\s*NAME)\s*[:\-]\s*({_NAME})", 20, group=1),
    FieldPattern("bank_name", r"\b[A-Z]{4,20}\s+BANK\b", 30, re.IGNORECASE),
    # Branch
    FieldPattern("branch", r"LA\s+JOLLA", 10, re.IGNORECASE),
    FieldPattern("branch", rf"(?i:BRANCH)\s*[:\-]\s*({_NAME})", 20, group=1),
    FieldPattern("branch", r"\b[A-Z]{2,15}\s+[A-Z]{2,15},\s*[A-Z]{2}\b", 30, re.IGNORECASE),
)


def clean_text(text: str) -> str:
    """Collapse all whitespace runs to single spaces."""
    return re.sub(r"\s+", " ", text or "").strip()


def _claimed_by_others(name: str, micr: MicrFields | None) -> frozenset[str]:
    """MICR values assigned to fields other than ``name``."""
    if micr is None:
        return frozenset()
    return frozenset(
        getattr(micr, attr)
        for other, attr in MICR_FIELDS.items()
        if other != name and getattr(micr, attr)
    )


def patterns_from_config(entries: list[PatternConfig]) -> list[FieldPattern]:
    """Build pattern table entries from configuration."""
    return [
        FieldPattern(
            field=entry.field,
            pattern=entry.pattern,
            priority=entry.priority,
            flags=re.IGNORECASE if entry.ignore_case else 0,
            group=entry.group,
        )
        for entry in entries
    ]


class FieldSynthesizer:
    """Builds an :class:`ExtractedRecord` from page text and MICR fields.

    Args:
        patterns: Pattern table. Defaults to :data:`DEFAULT_PATTERNS`.
        extra_patterns: Additional configured patterns merged into the
            table by priority.
    """

    def __init__(
        self,
        patterns: tuple[FieldPattern, ...] | list[FieldPattern] | None = None,
        extra_patterns: list[PatternConfig] | None = None,
    ) -> None:
        table = list(DEFAULT_PATTERNS if patterns is None else patterns)
        table.extend(patterns_from_config(extra_patterns or []))
        self.table: dict[str, list[FieldPattern]] = {name: [] for name in FIELD_NAMES}
        for entry in sorted(table, key=lambda p: p.priority):
            self.table[entry.field].append(entry)

    def match_fields(
        self, text: str, micr: MicrFields | None = None
    ) -> dict[str, str]:
        """Apply the pattern table to text.

        Fallback patterns skip values the MICR line assigns to another
        field, so a printed MICR line in the page text cannot turn the
        routing number into the account number.

        Args:
            text: Page transcript.
            micr: Parsed MICR fields, if any.

        Returns:
            Every field name mapped to its first match, or ``""``.
        """
        cleaned = clean_text(text)
        fields: dict[str, str] = {}
        for name, entries in self.table.items():
            fields[name] = ""
            claimed = _claimed_by_others(name, micr)
            for entry in entries:
                exclude = claimed if entry.fallback else frozenset()
                value = entry.search(cleaned, exclude)
                if value:
                    fields[name] = value
                    logger.debug("%s matched by priority %d", name, entry.priority)
                    break
        return fields

    @staticmethod
    def merge_micr(fields: dict[str, str], micr: MicrFields) -> dict[str, str]:
        """Fill empty numeric fields from MICR; text-derived values win."""
        merged = dict(fields)
        for name, attr in MICR_FIELDS.items():
            micr_value = getattr(micr, attr)
            if not merged.get(name) and micr_value:
                merged[name] = micr_value
        return merged

    @staticmethod
    def normalize_fields(fields: dict[str, str]) -> dict[str, str]:
        """Strip every value and uppercase the free-text fields."""
        normalized = {name: (value or "").strip() for name, value in fields.items()}
        for name in UPPERCASE_FIELDS:
            normalized[name] = normalized.get(name, "").upper()
        return normalized

    def synthesize(self, text: str, micr: MicrFields | None = None) -> ExtractedRecord:
        """Run match, MICR merge, and normalization.

        Args:
            text: Page transcript (embedded text layer or OCR output).
            micr: Parsed MICR fields, if the OCR path ran.

        Returns:
            The finished record, stamped with the current UTC time.
        """
        micr = micr or MicrFields()
        matched = self.match_fields(text, micr)
        fields = self.normalize_fields(self.merge_micr(matched, micr))
        found = sum(1 for value in fields.values() if value)
        logger.info("Synthesized %d of %d fields", found, len(fields))
        return ExtractedRecord(
            **fields,
            raw_text=text or "",
            raw_micr=micr.raw,
            created_at=utc_timestamp(),
        )
