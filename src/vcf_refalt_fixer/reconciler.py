"""Reconcile major/minor allele calls against a reference genome.

TASSEL's GBS pipeline writes REF/ALT as major/minor alleles. For every record
the true reference bases are fetched at the record position and compared with
the stated alleles:

1. REF matches the reference: the record is kept as-is.
2. ALT matches the reference: REF and ALT were swapped; the record is
   relabelled with ``REF = reference`` and ``ALT = old REF``.
3. Neither matches: the record cannot be a simple mislabelling and is
   dropped. A failed reference lookup is dropped the same way but reported
   with its own reason.
"""

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

from .errors import ReferenceNotFoundError
from .models import (
    Classification,
    DiagnosticEntry,
    DropReason,
    ReconciliationResult,
    VariantRecord,
)
from .reference import ReferenceLookup, lookup
from .transforms import HeaderTransform

logger = logging.getLogger(__name__)

RULE = "*" * 68


def classify_alleles(stated_ref: str, stated_alt: str, reference_window: str) -> Classification:
    """Classify a record from its alleles and the reference bases at its position.

    ``reference_window`` starts at the record position and must be at least as
    long as the longer allele (shorter only at the end of a contig). Each
    allele is compared against the prefix of the window of its own length.
    """
    window = reference_window.upper()
    if stated_ref.upper() == window[: len(stated_ref)]:
        return Classification.AGREE
    if stated_alt.upper() == window[: len(stated_alt)]:
        return Classification.SWAPPED
    return Classification.IRRECONCILABLE


def reconcile_record(
    record: VariantRecord,
    line_number: int,
    reference: ReferenceLookup,
) -> tuple[VariantRecord | None, DiagnosticEntry | None]:
    """Reconcile one record.

    Returns:
        Tuple of (record to write or None if dropped, diagnostic or None).
    """
    length = max(len(record.ref), len(record.alt))
    try:
        window = lookup(reference, record.chrom, record.pos, length)
    except ReferenceNotFoundError as e:
        return None, DiagnosticEntry(
            record_id=record.id,
            line_number=line_number,
            classification=Classification.IRRECONCILABLE,
            reference_base=None,
            stated_ref=record.ref,
            stated_alt=record.alt,
            chrom=record.chrom,
            pos=record.pos,
            reason=DropReason.LOOKUP_FAILED,
            message=str(e),
        )

    classification = classify_alleles(record.ref, record.alt, window)

    if classification is Classification.AGREE:
        return record, None

    if classification is Classification.SWAPPED:
        true_ref = window[: len(record.alt)]
        return record.swapped(true_ref), DiagnosticEntry(
            record_id=record.id,
            line_number=line_number,
            classification=classification,
            reference_base=true_ref,
            stated_ref=record.ref,
            stated_alt=record.alt,
            chrom=record.chrom,
            pos=record.pos,
        )

    return None, DiagnosticEntry(
        record_id=record.id,
        line_number=line_number,
        classification=classification,
        reference_base=window[: len(record.ref)],
        stated_ref=record.ref,
        stated_alt=record.alt,
        chrom=record.chrom,
        pos=record.pos,
        reason=DropReason.REFERENCE_MISMATCH,
    )


def format_diagnostic(entry: DiagnosticEntry) -> str:
    """Render a diagnostic as the human-readable block shown to operators."""
    if entry.classification is Classification.SWAPPED:
        return f"{entry.record_id} (Line = {entry.line_number}) is not in correct Ref/Alt! Fixing!"

    if entry.reason is DropReason.LOOKUP_FAILED:
        return "\n".join([
            RULE,
            "Error:",
            f"{entry.record_id} (Line = {entry.line_number}) could not be checked!",
            f"Reference lookup failed for {entry.chrom}:{entry.pos}: {entry.message}",
            "Omitting from the final VCF...",
            RULE,
        ])

    return "\n".join([
        RULE,
        "Error:",
        f"{entry.record_id} (Line = {entry.line_number}) is not in correct Ref/Alt!",
        f"The Reference provided states {entry.reference_base} is the correct allele...",
        f"However, the GBS provided states that Ref={entry.stated_ref} and Alt={entry.stated_alt}...",
        "Something is wrong with this marker! Omitting from the final VCF...",
        RULE,
    ])


def restore_identifiers(
    entry: DiagnosticEntry, transforms: Sequence[HeaderTransform]
) -> DiagnosticEntry:
    """Report a diagnostic with the CHROM and ID the input file uses."""
    if not transforms:
        return entry
    record = VariantRecord(
        chrom=entry.chrom,
        pos=entry.pos,
        id=entry.record_id,
        ref=entry.stated_ref,
        alt=entry.stated_alt,
    )
    for transform in reversed(transforms):
        record = transform.reverse_record(record)
    return replace(entry, chrom=record.chrom, record_id=record.id)


def _log_diagnostic(entry: DiagnosticEntry) -> None:
    if entry.classification is Classification.SWAPPED:
        logger.info("%s", format_diagnostic(entry))
    else:
        logger.warning("%s", format_diagnostic(entry))


def reconcile(
    records: Sequence[VariantRecord],
    reference: ReferenceLookup,
    workers: int = 1,
    transforms: Sequence[HeaderTransform] = (),
) -> ReconciliationResult:
    """Reconcile every record against the reference, preserving input order.

    Per-record failures never abort the run: they are recorded as
    diagnostics and the record is omitted.

    Args:
        records: Records in file order.
        reference: Reference lookup; must be safe for concurrent reads when
            ``workers > 1``.
        workers: Number of threads to reconcile with.
        transforms: Transforms already applied to ``records``; diagnostics
            are reported with them undone.

    Returns:
        ReconciliationResult with surviving records and diagnostics, both in
        input order.
    """
    numbered = list(enumerate(records, 1))

    def _run(item: tuple[int, VariantRecord]):
        line_number, record = item
        return reconcile_record(record, line_number, reference)

    if workers > 1 and len(numbered) > 1:
        # Executor.map yields in submission order, not completion order
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(_run, numbered))
    else:
        outcomes = [_run(item) for item in numbered]

    corrected: list[VariantRecord] = []
    diagnostics: list[DiagnosticEntry] = []
    for out_record, diagnostic in outcomes:
        if out_record is not None:
            corrected.append(out_record)
        if diagnostic is not None:
            diagnostic = restore_identifiers(diagnostic, transforms)
            diagnostics.append(diagnostic)
            _log_diagnostic(diagnostic)

    result = ReconciliationResult(records=corrected, diagnostics=diagnostics, n_input=len(numbered))
    logger.info(
        "Reconciled %d records: %d agree, %d swapped, %d dropped (%d lookup failures)",
        result.n_input,
        result.n_agree,
        result.n_swapped,
        result.n_dropped,
        result.n_lookup_failed,
    )
    return result
