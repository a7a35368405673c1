"""Assemble the corrected VCF: header + records, bgzipped and indexed."""

import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

import pysam

from .errors import EnvironmentConflictError, OutputError
from .models import HeaderBlock, VariantRecord
from .transforms import (
    MAJOR_MINOR_DESCRIPTION,
    REF_ALT_DESCRIPTION,
    HeaderTransform,
    apply_reverse,
    replace_description,
)

logger = logging.getLogger(__name__)

ASSEMBLED_NAME = "corrected_genotyping_file.vcf"
INDEX_FORMATS = {"csi", "tbi"}


def index_path_for(output_path: Path, index_format: str = "csi") -> Path:
    """Name of the index written next to a bgzipped VCF."""
    output_path = Path(output_path)
    return output_path.with_name(f"{output_path.name}.{index_format}")


def render_vcf(
    header: HeaderBlock,
    records: Sequence[VariantRecord],
    transforms: Sequence[HeaderTransform] = (),
    old_description: str = MAJOR_MINOR_DESCRIPTION,
    new_description: str = REF_ALT_DESCRIPTION,
) -> tuple[HeaderBlock, list[VariantRecord]]:
    """Undo decode-time transforms and rewrite the allele-convention sentence."""
    header, out_records = apply_reverse(transforms, header, records)
    header = replace_description(header, old_description, new_description)
    return header, out_records


def write_vcf(path: Path, header: HeaderBlock, records: Sequence[VariantRecord]) -> Path:
    """Write an uncompressed VCF."""
    with open(path, "w") as f:
        f.write(header.to_text())
        for record in records:
            f.write(record.to_line())
            f.write("\n")
    return path


def compress_and_index(vcf_path: Path, index_format: str = "csi") -> tuple[Path, Path]:
    """bgzip a VCF in place and build its coordinate index.

    Returns:
        Tuple of (compressed path, index path).

    Raises:
        OutputError: If compression or indexing fails (e.g. unsorted records).
    """
    if index_format not in INDEX_FORMATS:
        raise OutputError(f"index format must be one of {sorted(INDEX_FORMATS)}, got '{index_format}'")

    try:
        compressed = pysam.tabix_index(
            str(vcf_path),
            preset="vcf",
            force=True,
            csi=index_format == "csi",
        )
    except (OSError, ValueError) as e:
        raise OutputError(f"Failed to compress/index {vcf_path.name}: {e}") from e

    compressed_path = Path(compressed)
    index_path = Path(f"{compressed}.{index_format}")
    logger.debug("Wrote %s and %s", compressed_path.name, index_path.name)
    return compressed_path, index_path


def assemble(
    header: HeaderBlock,
    records: Sequence[VariantRecord],
    workdir: Path,
    transforms: Sequence[HeaderTransform] = (),
    index_format: str = "csi",
    old_description: str = MAJOR_MINOR_DESCRIPTION,
    new_description: str = REF_ALT_DESCRIPTION,
) -> tuple[Path, Path]:
    """Build the final bgzipped, indexed VCF inside ``workdir``.

    Returns:
        Tuple of (compressed VCF path, index path), both inside ``workdir``.
    """
    out_header, out_records = render_vcf(
        header, records, transforms, old_description, new_description
    )
    vcf_path = write_vcf(Path(workdir) / ASSEMBLED_NAME, out_header, out_records)
    logger.info("Assembled %d records into %s", len(out_records), vcf_path.name)
    return compress_and_index(vcf_path, index_format)


def publish(
    compressed: Path,
    index: Path,
    output_path: Path,
    index_format: str = "csi",
    overwrite: bool = False,
) -> tuple[Path, Path]:
    """Move the assembled artifacts to their final names.

    The VCF is moved first; if its index cannot follow, the VCF is removed
    again so an unindexed output is never left behind.

    Raises:
        EnvironmentConflictError: If the output exists and ``overwrite`` is False.
        OutputError: If either artifact cannot be moved.
    """
    output_path = Path(output_path)
    index_output = index_path_for(output_path, index_format)

    if not overwrite:
        for target in (output_path, index_output):
            if target.exists():
                raise EnvironmentConflictError(
                    f"Output '{target}' already exists. Use --force to overwrite."
                )

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(compressed), str(output_path))
    except OSError as e:
        raise OutputError(f"Failed to move output into place: {e}") from e

    try:
        shutil.move(str(index), str(index_output))
    except OSError as e:
        output_path.unlink(missing_ok=True)
        raise OutputError(f"Failed to move index into place: {e}") from e

    return output_path, index_output
