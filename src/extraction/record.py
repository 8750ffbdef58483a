"""The structured record produced by one extraction run."""

from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone

FIELD_NAMES: tuple[str, ...] = (
    "account_name",
    "account_number",
    "routing_number",
    "check_number",
    "ifsc",
    "bank_name",
    "branch",
)

# Free-text fields stored uppercase for consistent search.
UPPERCASE_FIELDS: tuple[str, ...] = ("account_name", "bank_name", "branch")

# MICR-derivable numeric fields and the MicrFields attribute feeding each.
MICR_FIELDS: dict[str, str] = {
    "routing_number": "routing",
    "account_number": "account",
    "check_number": "check_number",
}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class ExtractedRecord:
    """Banking fields plus the raw transcripts they were derived from.

    Every value is a string and defaults to ``""``, never ``None``.
    """

    account_name: str = ""
    account_number: str = ""
    routing_number: str = ""
    check_number: str = ""
    ifsc: str = ""
    bank_name: str = ""
    branch: str = ""
    raw_text: str = ""
    raw_micr: str = ""
    created_at: str = ""

    def __post_init__(self) -> None:
        for name, value in asdict(self).items():
            if value is None:
                object.__setattr__(self, name, "")

    def fields(self) -> dict[str, str]:
        """The banking fields only, without transcripts or timestamp."""
        return {name: getattr(self, name) for name in FIELD_NAMES}

    def with_changes(self, **changes: str) -> "ExtractedRecord":
        return replace(self, **changes)
