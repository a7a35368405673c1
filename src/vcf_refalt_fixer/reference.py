"""Reference genome access for allele reconciliation."""

import logging
import threading
from pathlib import Path
from typing import Protocol

from pyfaidx import Fasta, FastaIndexingError, FetchError

from .errors import ReferenceNotFoundError, ReferenceUnreadableError

logger = logging.getLogger(__name__)


class ReferenceLookup(Protocol):
    """Protocol for reference genome access."""

    def fetch(self, chrom: str, start: int, end: int) -> str:
        """Fetch reference sequence for a region (0-based, half-open)."""
        ...


def lookup(reference: ReferenceLookup, chrom: str, pos: int, length: int = 1) -> str:
    """Return the reference bases starting at a 1-based position.

    Reads the 0-based half-open interval ``[pos - 1, pos - 1 + length)``.
    The window may be shorter than ``length`` at the end of a contig.

    Raises:
        ReferenceNotFoundError: If the chromosome is unknown or the
            position lies outside the sequence.
    """
    if pos < 1:
        raise ReferenceNotFoundError(chrom, pos, "position must be >= 1")
    sequence = reference.fetch(chrom, pos - 1, pos - 1 + length)
    if not sequence:
        raise ReferenceNotFoundError(chrom, pos, "position beyond end of sequence")
    return sequence


class FastaReference:
    """Indexed FASTA reference backed by pyfaidx.

    The ``.fai`` index is built next to the FASTA the first time it is
    opened. Reads are serialized with a lock so one instance can be
    shared across worker threads.
    """

    def __init__(self, fasta_path: Path | str):
        self.path = Path(fasta_path)
        if not self.path.is_file():
            raise ReferenceUnreadableError(f"Reference sequence not found: {self.path}")
        try:
            self._fasta = Fasta(str(self.path), as_raw=True)
        except (OSError, FastaIndexingError, ValueError) as e:
            raise ReferenceUnreadableError(
                f"Cannot read or index reference sequence {self.path}: {e}"
            ) from e
        self._lock = threading.Lock()
        logger.debug("Opened reference %s with %d sequences", self.path, len(self._fasta.keys()))

    @property
    def contig_names(self) -> list[str]:
        return list(self._fasta.keys())

    def fetch(self, chrom: str, start: int, end: int) -> str:
        """Fetch reference sequence for a region (0-based, half-open), uppercased."""
        with self._lock:
            try:
                record = self._fasta[chrom]
            except KeyError:
                raise ReferenceNotFoundError(chrom, start + 1, "chromosome not in reference") from None
            length = len(record)
            if start < 0 or start >= length:
                raise ReferenceNotFoundError(
                    chrom, start + 1, f"outside sequence of length {length}"
                )
            try:
                sequence = record[start:min(end, length)]
            except FetchError as e:
                raise ReferenceNotFoundError(chrom, start + 1, str(e)) from e
        return str(sequence).upper()

    def close(self) -> None:
        self._fasta.close()

    def __enter__(self) -> "FastaReference":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class InMemoryReference:
    """Reference held as a dict of sequence name to sequence."""

    def __init__(self, sequences: dict[str, str]):
        self.sequences = sequences

    @property
    def contig_names(self) -> list[str]:
        return list(self.sequences)

    def fetch(self, chrom: str, start: int, end: int) -> str:
        try:
            sequence = self.sequences[chrom]
        except KeyError:
            raise ReferenceNotFoundError(chrom, start + 1, "chromosome not in reference") from None
        return sequence[max(start, 0):end].upper()
