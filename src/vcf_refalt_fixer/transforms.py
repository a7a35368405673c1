"""Invertible text transforms applied to a VCF at decode and encode time.

TASSEL writes contig ids without a chromosome prefix (``1``, ``2`` ...) while
most plant references name sequences ``Chr1``, ``Chr2`` ... . It also writes a
placeholder token that some downstream tools choke on. Both rewrites are
modelled as transforms with an exact inverse: the forward direction runs once
after decoding, the reverse direction once before writing the output.

The description-sentence swap is the only one-way rewrite and is applied
separately by the assembler.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from .models import HeaderBlock, VariantRecord

logger = logging.getLogger(__name__)

CONTIG_LINE_PREFIX = "##contig=<ID="

MAJOR_MINOR_DESCRIPTION = (
    "Reference allele is not known. The major allele was used as reference allele"
)
REF_ALT_DESCRIPTION = "Alleles reported as reference-alternative"


class HeaderTransform:
    """A named rewrite of header lines and records with an exact inverse."""

    name = "transform"

    def forward_line(self, line: str) -> str:
        return line

    def reverse_line(self, line: str) -> str:
        return line

    def forward_record(self, record: VariantRecord) -> VariantRecord:
        return record

    def reverse_record(self, record: VariantRecord) -> VariantRecord:
        return record


@dataclass
class ContigPrefixTransform(HeaderTransform):
    """Synthesize a chromosome-name prefix on contig ids and record CHROMs."""

    prefix: str = "Chr"
    name = "contig_prefix"

    def is_needed(
        self,
        header: HeaderBlock,
        records: Sequence[VariantRecord] = (),
        reference_contigs: Iterable[str] | None = None,
    ) -> bool:
        """Decide whether the prefix must be synthesized for this file.

        The prefix is needed when none of the declared contig ids carry it
        (falling back to record chromosomes when no contig lines exist), and
        the reference, if known, actually names its sequences with it.
        """
        if not self.prefix:
            return False

        if reference_contigs is not None:
            if not any(name.startswith(self.prefix) for name in reference_contigs):
                logger.info(
                    "Reference sequences do not use the '%s' prefix; leaving contig ids as-is",
                    self.prefix,
                )
                return False

        names = header.contig_ids or [record.chrom for record in records]
        if not names:
            return False
        return not any(name.startswith(self.prefix) for name in names)

    def forward_line(self, line: str) -> str:
        if line.startswith(CONTIG_LINE_PREFIX):
            return CONTIG_LINE_PREFIX + self.prefix + line[len(CONTIG_LINE_PREFIX):]
        return line

    def reverse_line(self, line: str) -> str:
        marker = CONTIG_LINE_PREFIX + self.prefix
        if line.startswith(marker):
            return CONTIG_LINE_PREFIX + line[len(marker):]
        return line

    def forward_record(self, record: VariantRecord) -> VariantRecord:
        return replace(record, chrom=self.prefix + record.chrom)

    def reverse_record(self, record: VariantRecord) -> VariantRecord:
        if record.chrom.startswith(self.prefix):
            return replace(record, chrom=record.chrom[len(self.prefix):])
        return record


@dataclass
class PlaceholderTokenTransform(HeaderTransform):
    """Re-case the placeholder TASSEL writes for missing metadata.

    Occurrences are replaced as plain substrings, in header lines and in
    every record column except the alleles. Unplaced contigs named after
    the token are renamed in CHROM the same way as in their contig line.
    """

    token: str = "UNKNOWN"
    replacement: str = "Unknown"
    name = "placeholder_token"

    def is_needed(self, header: HeaderBlock, records: Sequence[VariantRecord] = ()) -> bool:
        """True when the token occurs and the replacement does not.

        If the replacement text is already present the reverse direction
        could not tell the two apart, so the transform is skipped.
        """
        if not self.token or self.token == self.replacement:
            return False

        texts = list(header.lines)
        for record in records:
            texts.append(record.chrom)
            texts.append(record.id)
            texts.extend(record.rest)

        has_token = any(self.token in text for text in texts)
        if not has_token:
            return False
        if any(self.replacement in text for text in texts):
            logger.warning(
                "Both '%s' and '%s' occur in the input; placeholder left untouched",
                self.token,
                self.replacement,
            )
            return False
        return True

    def forward_line(self, line: str) -> str:
        return line.replace(self.token, self.replacement)

    def reverse_line(self, line: str) -> str:
        return line.replace(self.replacement, self.token)

    def forward_record(self, record: VariantRecord) -> VariantRecord:
        return replace(
            record,
            chrom=self.forward_line(record.chrom),
            id=self.forward_line(record.id),
            rest=[self.forward_line(value) for value in record.rest],
        )

    def reverse_record(self, record: VariantRecord) -> VariantRecord:
        return replace(
            record,
            chrom=self.reverse_line(record.chrom),
            id=self.reverse_line(record.id),
            rest=[self.reverse_line(value) for value in record.rest],
        )


def apply_forward(
    transforms: Sequence[HeaderTransform],
    header: HeaderBlock,
    records: Sequence[VariantRecord],
) -> tuple[HeaderBlock, list[VariantRecord]]:
    """Apply transforms in order to a header and its records."""
    lines = list(header.lines)
    out_records = list(records)
    for transform in transforms:
        lines = [transform.forward_line(line) for line in lines]
        out_records = [transform.forward_record(record) for record in out_records]
    return HeaderBlock(lines=lines), out_records


def apply_reverse(
    transforms: Sequence[HeaderTransform],
    header: HeaderBlock,
    records: Sequence[VariantRecord],
) -> tuple[HeaderBlock, list[VariantRecord]]:
    """Undo transforms, last applied first."""
    lines = list(header.lines)
    out_records = list(records)
    for transform in reversed(transforms):
        lines = [transform.reverse_line(line) for line in lines]
        out_records = [transform.reverse_record(record) for record in out_records]
    return HeaderBlock(lines=lines), out_records


def replace_description(
    header: HeaderBlock,
    old: str = MAJOR_MINOR_DESCRIPTION,
    new: str = REF_ALT_DESCRIPTION,
) -> HeaderBlock:
    """Swap the major/minor description sentence for the ref/alt one."""
    lines = []
    replaced = 0
    for line in header.lines:
        if old in line:
            line = line.replace(old, new)
            replaced += 1
        lines.append(line)
    if replaced:
        logger.debug("Rewrote allele-convention description on %d header line(s)", replaced)
    return HeaderBlock(lines=lines)
