"""System dependency checker for vcf-refalt-fixer."""

import importlib
import os
import platform
import sys
from dataclasses import dataclass
from pathlib import Path


@dataclass
class CheckResult:
    """Result of a dependency check."""

    name: str
    passed: bool
    version: str | None = None
    message: str | None = None


INSTALL_INSTRUCTIONS = {
    "python": {
        "darwin": "brew install python@3.11",
        "linux": "sudo apt install python3.11 or use pyenv",
        "windows": "Download from https://www.python.org/downloads/",
    },
    "pysam": {
        "darwin": "pip install pysam",
        "linux": "pip install pysam",
        "windows": "pysam is not supported on Windows; use WSL",
    },
}


class DependencyChecker:
    """Check system dependencies for vcf-refalt-fixer."""

    def check_python(self) -> CheckResult:
        """Check Python version is 3.11+."""
        version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
        passed = sys.version_info >= (3, 11)

        return CheckResult(
            name="Python",
            passed=passed,
            version=version,
            message=None if passed else "Python 3.11+ required",
        )

    def _check_module(self, module_name: str, purpose: str) -> CheckResult:
        try:
            module = importlib.import_module(module_name)
            version = getattr(module, "__version__", "unknown")
            return CheckResult(name=module_name, passed=True, version=version)
        except ImportError:
            return CheckResult(
                name=module_name,
                passed=False,
                message=f"{module_name} not installed ({purpose}). Install with: pip install {module_name}",
            )

    def check_pysam(self) -> CheckResult:
        """Check if pysam is installed (bgzip compression and indexing)."""
        return self._check_module("pysam", "needed to bgzip and index the output")

    def check_pyfaidx(self) -> CheckResult:
        """Check if pyfaidx is installed (reference lookup)."""
        return self._check_module("pyfaidx", "needed to read the reference FASTA")

    def check_reference(self, reference_path: Path) -> CheckResult:
        """Check that a reference FASTA exists and is indexed or indexable."""
        reference_path = Path(reference_path)
        name = f"Reference {reference_path.name}"

        if not reference_path.is_file():
            return CheckResult(name=name, passed=False, message=f"File not found: {reference_path}")

        fai = reference_path.with_name(f"{reference_path.name}.fai")
        if fai.is_file():
            return CheckResult(name=name, passed=True, version="indexed")

        if not fai.parent.exists() or not _is_writable(fai.parent):
            return CheckResult(
                name=name,
                passed=False,
                message=f"No {fai.name} and directory is not writable to create one",
            )
        return CheckResult(
            name=name,
            passed=True,
            version="not indexed",
            message=f"{fai.name} will be created on first use",
        )

    def check_all(self, reference_path: Path | None = None) -> list[CheckResult]:
        """Run all dependency checks.

        Returns:
            List of CheckResult for each dependency.
        """
        results = [
            self.check_python(),
            self.check_pyfaidx(),
            self.check_pysam(),
        ]
        if reference_path is not None:
            results.append(self.check_reference(reference_path))
        return results

    def get_install_instructions(self, dependency: str, os_platform: str | None = None) -> str:
        """Get installation instructions for a dependency.

        Args:
            dependency: Name of the dependency (e.g., 'pysam', 'python').
            os_platform: Platform name (darwin, linux, windows). Auto-detected if None.

        Returns:
            Installation instructions string.
        """
        if os_platform is None:
            os_platform = platform.system().lower()
            if os_platform not in ("darwin", "linux", "windows"):
                os_platform = "linux"

        instructions = INSTALL_INSTRUCTIONS.get(dependency, {})
        return instructions.get(os_platform, f"Please install {dependency}")


def _is_writable(directory: Path) -> bool:
    return os.access(directory, os.W_OK)


def check_all(reference_path: Path | None = None) -> list[CheckResult]:
    """Convenience function to run all dependency checks."""
    checker = DependencyChecker()
    return checker.check_all(reference_path)
