"""vcf-refalt-fixer: reconcile major/minor VCF allele calls against a reference genome."""

__version__ = "1.0.0"
