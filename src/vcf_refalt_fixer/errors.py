"""Exception hierarchy for vcf-refalt-fixer."""


class FixerError(Exception):
    """Base class for all errors raised by vcf-refalt-fixer."""

    pass


class FatalInputError(FixerError):
    """Raised when a required input is missing, unreadable or undecodable."""

    pass


class VCFDecodeError(FatalInputError):
    """Raised when the variant file cannot be decoded as VCF."""

    pass


class ReferenceUnreadableError(FatalInputError):
    """Raised when the reference FASTA cannot be opened or indexed."""

    pass


class ReferenceNotFoundError(FixerError, KeyError):
    """Raised when a chromosome/position cannot be located in the reference."""

    def __init__(self, chrom: str, pos: int, detail: str | None = None):
        self.chrom = chrom
        self.pos = pos
        self.detail = detail
        message = f"{chrom}:{pos} not found in reference"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0]


class EnvironmentConflictError(FixerError):
    """Raised when a scratch area or output artifact already exists."""

    pass


class ConfigValidationError(FixerError):
    """Raised when configuration validation fails."""

    pass


class OutputError(FixerError):
    """Raised when the corrected VCF cannot be compressed, indexed or moved."""

    pass
