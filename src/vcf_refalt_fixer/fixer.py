"""End-to-end fixer: decode, reconcile, assemble, publish."""

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .assembler import assemble, index_path_for, publish
from .config import FixerConfig
from .errors import EnvironmentConflictError
from .models import DiagnosticEntry, ReconciliationResult
from .reconciler import reconcile
from .reference import FastaReference
from .transforms import ContigPrefixTransform, HeaderTransform, PlaceholderTokenTransform
from .vcf_store import VariantStore, read_vcf
from .workspace import Workspace

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
    "line",
    "id",
    "chrom",
    "pos",
    "classification",
    "reason",
    "reference",
    "stated_ref",
    "stated_alt",
]


@dataclass
class FixResult:
    """Outcome of one fixer run."""

    output_path: Path
    index_path: Path
    n_input: int
    n_written: int
    n_swapped: int
    n_dropped: int
    n_lookup_failed: int
    transforms: list[str] = field(default_factory=list)
    diagnostics: list[DiagnosticEntry] = field(default_factory=list)

    @classmethod
    def from_reconciliation(
        cls,
        result: ReconciliationResult,
        output_path: Path,
        index_path: Path,
        transforms: list[HeaderTransform],
    ) -> "FixResult":
        return cls(
            output_path=output_path,
            index_path=index_path,
            n_input=result.n_input,
            n_written=len(result.records),
            n_swapped=result.n_swapped,
            n_dropped=result.n_dropped,
            n_lookup_failed=result.n_lookup_failed,
            transforms=[t.name for t in transforms],
            diagnostics=list(result.diagnostics),
        )

    def to_dict(self) -> dict:
        return {
            "output": str(self.output_path),
            "index": str(self.index_path),
            "variants": {
                "input": self.n_input,
                "written": self.n_written,
                "swapped": self.n_swapped,
                "dropped": self.n_dropped,
                "lookup_failed": self.n_lookup_failed,
            },
            "transforms": self.transforms,
        }


def choose_transforms(
    store: VariantStore,
    config: FixerConfig,
    reference_contigs: list[str] | None = None,
) -> list[HeaderTransform]:
    """Pick the decode-time transforms this input needs."""
    transforms: list[HeaderTransform] = []

    prefix = ContigPrefixTransform(prefix=config.chrom_prefix)
    if prefix.is_needed(store.header, store.records, reference_contigs):
        logger.warning(
            "string '##contig=<ID=%s' not found in header, attempting to fix...",
            config.chrom_prefix,
        )
        transforms.append(prefix)

    placeholder = PlaceholderTokenTransform(
        token=config.placeholder_token,
        replacement=config.placeholder_replacement,
    )
    if placeholder.is_needed(store.header, store.records):
        logger.warning(
            "string '%s' found in input, attempting to fix...", config.placeholder_token
        )
        transforms.append(placeholder)

    return transforms


def write_report(diagnostics: list[DiagnosticEntry], report_path: Path) -> Path:
    """Write diagnostics as a tab-separated report."""
    with open(report_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=REPORT_COLUMNS, delimiter="\t")
        writer.writeheader()
        for entry in diagnostics:
            writer.writerow(entry.to_dict())
    return report_path


def fix_vcf(
    vcf_path: Path | str,
    reference_path: Path | str,
    output_path: Path | str,
    config: FixerConfig | None = None,
    scratch_dir: Path | str | None = None,
    overwrite: bool = False,
    report_path: Path | str | None = None,
) -> FixResult:
    """Rewrite a major/minor VCF into reference/alternate convention.

    Nothing is written to ``output_path`` unless every step succeeds; the
    scratch directory is removed on every exit path.

    Args:
        vcf_path: Input VCF (.vcf.gz or .vcf).
        reference_path: Reference FASTA.
        output_path: Name of the bgzipped output VCF; the index is written
            next to it.
        config: Fixer configuration; defaults when None.
        scratch_dir: Explicit scratch directory, which must not exist yet.
            A unique temporary directory is used when None.
        overwrite: Replace an existing output instead of failing.
        report_path: Optional TSV report of all diagnostics.

    Raises:
        FatalInputError: If the VCF or reference cannot be read.
        EnvironmentConflictError: If the scratch directory or output exists.
        OutputError: If the output cannot be compressed, indexed or moved.
    """
    config = config or FixerConfig()
    output_path = Path(output_path)

    if not overwrite:
        for target in (output_path, index_path_for(output_path, config.index_format)):
            if target.exists():
                raise EnvironmentConflictError(
                    f"Output '{target}' already exists. Use --force to overwrite."
                )

    with Workspace(path=scratch_dir) as workdir:
        logger.info("Provided path of VCF file: %s", vcf_path)
        logger.info("Provided path of reference sequence file: %s", reference_path)

        with FastaReference(reference_path) as reference:
            store = read_vcf(vcf_path)
            transforms = choose_transforms(store, config, reference.contig_names)
            store.apply(transforms)

            logger.info("Looping through and fixing ref/alt marker info...")
            result = reconcile(
                store.records, reference, workers=config.workers, transforms=store.transforms
            )

        compressed, index = assemble(
            store.header,
            result.records,
            workdir,
            transforms=store.transforms,
            index_format=config.index_format,
            old_description=config.major_minor_description,
            new_description=config.ref_alt_description,
        )
        final_output, final_index = publish(
            compressed, index, output_path, config.index_format, overwrite=overwrite
        )

    if report_path is not None:
        write_report(result.diagnostics, Path(report_path))

    logger.info("Done! Wrote %s", final_output)
    return FixResult.from_reconciliation(result, final_output, final_index, store.transforms)
