"""Decoding of a VCF into a header block and ordered variant records."""

import gzip
import logging
import zlib
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from .errors import VCFDecodeError
from .models import HeaderBlock, VariantRecord
from .transforms import HeaderTransform, apply_forward

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


def _is_gzipped(path: Path) -> bool:
    with open(path, "rb") as f:
        return f.read(2) == GZIP_MAGIC


def open_vcf_text(path: Path | str) -> TextIO:
    """Open a plain, gzip or bgzip VCF for text reading."""
    path = Path(path)
    opener = gzip.open if str(path).endswith(".gz") or _is_gzipped(path) else open
    return opener(path, "rt")


@dataclass
class VariantStore:
    """Header block and records of one VCF, held in memory in file order."""

    header: HeaderBlock
    records: list[VariantRecord] = field(default_factory=list)
    transforms: list[HeaderTransform] = field(default_factory=list)
    source: Path | None = None

    def __len__(self) -> int:
        return len(self.records)

    @property
    def contig_ids(self) -> list[str]:
        return self.header.contig_ids

    def apply(self, transforms: Sequence[HeaderTransform]) -> None:
        """Forward-apply transforms and remember them for the assembler."""
        if not transforms:
            return
        self.header, self.records = apply_forward(transforms, self.header, self.records)
        self.transforms.extend(transforms)
        logger.info("Applied header transforms: %s", ", ".join(t.name for t in transforms))


def parse_vcf_lines(lines, source: str = "<input>") -> VariantStore:
    """Split VCF text lines into a header block and records.

    Raises:
        VCFDecodeError: If there is no ``#CHROM`` line, a header line follows
            a record, or a record cannot be split into CHROM..ALT.
    """
    header_lines: list[str] = []
    records: list[VariantRecord] = []

    for line_num, raw in enumerate(lines, 1):
        line = raw.rstrip("\r\n")
        if not line:
            continue
        if line.startswith("#"):
            if records:
                raise VCFDecodeError(f"{source}:{line_num}: header line after variant records")
            header_lines.append(line)
            continue
        if not header_lines or not header_lines[-1].startswith("#CHROM"):
            raise VCFDecodeError(f"{source}:{line_num}: missing #CHROM header line before records")
        try:
            records.append(VariantRecord.from_line(line))
        except ValueError as e:
            raise VCFDecodeError(f"{source}:{line_num}: {e}") from None

    header = HeaderBlock(lines=header_lines)
    if header.column_line is None:
        raise VCFDecodeError(f"{source}: no #CHROM header line found")
    if not header.contig_ids:
        logger.warning("%s declares no ##contig lines", source)

    return VariantStore(header=header, records=records)


def read_vcf(path: Path | str) -> VariantStore:
    """Decode a whole VCF file.

    Raises:
        VCFDecodeError: If the file is missing, unreadable or not a VCF.
    """
    path = Path(path)
    if not path.is_file():
        raise VCFDecodeError(f"VCF file not found: {path}")

    try:
        with open_vcf_text(path) as f:
            store = parse_vcf_lines(f, source=path.name)
    except (OSError, EOFError, UnicodeDecodeError, zlib.error) as e:
        raise VCFDecodeError(f"Cannot decode VCF {path}: {e}") from e

    store.source = path
    logger.info(
        "Read %d variant records for %d samples from %s",
        len(store.records),
        len(store.header.samples),
        path.name,
    )
    return store
