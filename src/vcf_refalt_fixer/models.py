"""Data models for VCF records and reconciliation diagnostics."""

import re
from dataclasses import dataclass, field, replace
from enum import Enum

CONTIG_ID_PATTERN = re.compile(r"^##contig=<ID=([^,>]+)")


class Classification(Enum):
    """Outcome of reconciling one record against the reference."""

    AGREE = "agree"
    SWAPPED = "swapped"
    IRRECONCILABLE = "irreconcilable"


class DropReason(Enum):
    """Why an irreconcilable record was dropped."""

    REFERENCE_MISMATCH = "reference_mismatch"
    LOOKUP_FAILED = "lookup_failed"


@dataclass
class VariantRecord:
    """Represents a single VCF data line."""

    chrom: str
    pos: int
    id: str
    ref: str
    alt: str
    # QUAL, FILTER, INFO, FORMAT and sample columns, verbatim
    rest: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.pos < 1:
            raise ValueError(f"POS must be >= 1, got {self.pos}")
        if not self.ref or not self.alt:
            raise ValueError("REF and ALT must be non-empty")

    @classmethod
    def from_line(cls, line: str) -> "VariantRecord":
        """Split a tab-separated VCF data line into a record.

        Raises:
            ValueError: If the line has fewer than five columns or a bad POS.
        """
        fields = line.rstrip("\r\n").split("\t")
        if len(fields) < 5:
            raise ValueError(f"expected at least 5 tab-separated columns, got {len(fields)}")
        try:
            pos = int(fields[1])
        except ValueError:
            raise ValueError(f"POS is not an integer: {fields[1]!r}") from None
        return cls(
            chrom=fields[0],
            pos=pos,
            id=fields[2],
            ref=fields[3],
            alt=fields[4],
            rest=fields[5:],
        )

    def to_line(self) -> str:
        """Serialize the record back to a tab-separated line (no newline)."""
        return "\t".join([self.chrom, str(self.pos), self.id, self.ref, self.alt, *self.rest])

    def swapped(self, true_ref: str) -> "VariantRecord":
        """Return a copy relabelled into reference/alternate convention."""
        return replace(self, ref=true_ref, alt=self.ref, rest=list(self.rest))


@dataclass
class HeaderBlock:
    """The ``#``-prefixed lines of a VCF, ending with the ``#CHROM`` line."""

    lines: list[str] = field(default_factory=list)

    @property
    def column_line(self) -> str | None:
        for line in reversed(self.lines):
            if line.startswith("#CHROM"):
                return line
        return None

    @property
    def contig_ids(self) -> list[str]:
        ids = []
        for line in self.lines:
            match = CONTIG_ID_PATTERN.match(line)
            if match:
                ids.append(match.group(1))
        return ids

    @property
    def samples(self) -> list[str]:
        column_line = self.column_line
        if column_line is None:
            return []
        return column_line.split("\t")[9:]

    def to_text(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)


@dataclass
class DiagnosticEntry:
    """One swapped or dropped record, kept for operator review."""

    record_id: str
    line_number: int
    classification: Classification
    reference_base: str | None
    stated_ref: str
    stated_alt: str
    chrom: str
    pos: int
    reason: DropReason | None = None
    message: str | None = None

    @property
    def dropped(self) -> bool:
        return self.classification is Classification.IRRECONCILABLE

    def to_dict(self) -> dict:
        return {
            "line": self.line_number,
            "id": self.record_id,
            "chrom": self.chrom,
            "pos": self.pos,
            "classification": self.classification.value,
            "reason": self.reason.value if self.reason else "",
            "reference": self.reference_base or "",
            "stated_ref": self.stated_ref,
            "stated_alt": self.stated_alt,
        }


@dataclass
class ReconciliationResult:
    """Corrected records plus the diagnostic trail of one reconciliation."""

    records: list[VariantRecord]
    diagnostics: list[DiagnosticEntry]
    n_input: int

    @property
    def n_swapped(self) -> int:
        return sum(1 for d in self.diagnostics if d.classification is Classification.SWAPPED)

    @property
    def n_dropped(self) -> int:
        return sum(1 for d in self.diagnostics if d.dropped)

    @property
    def n_lookup_failed(self) -> int:
        return sum(1 for d in self.diagnostics if d.reason is DropReason.LOOKUP_FAILED)

    @property
    def n_agree(self) -> int:
        return self.n_input - self.n_swapped - self.n_dropped
