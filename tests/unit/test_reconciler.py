"""Tests for reconciling major/minor allele calls against a reference."""

import logging

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from fixtures.vcf_generator import VCFGenerator
from vcf_refalt_fixer.config import FixerConfig
from vcf_refalt_fixer.fixer import choose_transforms
from vcf_refalt_fixer.models import Classification, DropReason, HeaderBlock, VariantRecord
from vcf_refalt_fixer.reconciler import (
    classify_alleles,
    format_diagnostic,
    reconcile,
    reconcile_record,
    restore_identifiers,
)
from vcf_refalt_fixer.reference import InMemoryReference
from vcf_refalt_fixer.transforms import ContigPrefixTransform, PlaceholderTokenTransform
from vcf_refalt_fixer.vcf_store import VariantStore

BASES = "ACGT"


def make_record(pos: int, ref: str, alt: str, chrom: str = "1", id: str | None = None):
    return VariantRecord(
        chrom=chrom,
        pos=pos,
        id=id or f"S{chrom}_{pos}",
        ref=ref,
        alt=alt,
        rest=[".", "PASS", "NS=3", "GT", "0/1"],
    )


def make_reference(bases: dict[int, str], length: int = 500, chrom: str = "1"):
    sequence = ["T"] * length
    for pos, base in bases.items():
        for offset, char in enumerate(base):
            sequence[pos - 1 + offset] = char
    return InMemoryReference({chrom: "".join(sequence)})


class TestClassifyAlleles:
    """Test the pure classification function."""

    @pytest.mark.parametrize(
        "ref,alt,window,expected",
        [
            ("A", "G", "A", Classification.AGREE),
            ("A", "G", "G", Classification.SWAPPED),
            ("A", "G", "C", Classification.IRRECONCILABLE),
            ("a", "G", "A", Classification.AGREE),
            ("A", "g", "G", Classification.SWAPPED),
            ("A", "G", "g", Classification.SWAPPED),
        ],
    )
    def test_snp_cases(self, ref, alt, window, expected):
        assert classify_alleles(ref, alt, window) is expected

    def test_indel_ref_matches_window_prefix(self):
        assert classify_alleles("AC", "A", "ACG") is Classification.AGREE

    def test_indel_alt_matches_window_prefix(self):
        assert classify_alleles("A", "ACG", "ACG") is Classification.SWAPPED

    def test_no_partial_match(self):
        """A longer allele never matches a truncated window."""
        assert classify_alleles("ACGT", "C", "ACG") is Classification.IRRECONCILABLE

    def test_multiallelic_alt_never_matches_single_base(self):
        assert classify_alleles("A", "G,T", "G") is Classification.IRRECONCILABLE

    @given(
        ref=st.sampled_from(BASES),
        alt=st.sampled_from(BASES),
        true_base=st.sampled_from(BASES),
    )
    def test_classification_is_deterministic(self, ref, alt, true_base):
        first = classify_alleles(ref, alt, true_base)
        assert classify_alleles(ref, alt, true_base) is first
        if ref == true_base:
            assert first is Classification.AGREE
        elif alt == true_base:
            assert first is Classification.SWAPPED
        else:
            assert first is Classification.IRRECONCILABLE


class TestReconcileExamples:
    """Worked examples: true bases 1:100=G, 1:200=A, 1:300=C."""

    @pytest.fixture
    def reference(self):
        return make_reference({100: "G", 200: "A", 300: "C"})

    def test_swapped_record(self, reference):
        record = make_record(100, "A", "G")
        result = reconcile([record], reference)

        assert len(result.records) == 1
        fixed = result.records[0]
        assert fixed.ref == "G"
        assert fixed.alt == "A"
        assert fixed.chrom == record.chrom
        assert fixed.pos == record.pos
        assert fixed.id == record.id
        assert fixed.rest == record.rest
        assert len(result.diagnostics) == 1
        assert result.diagnostics[0].classification is Classification.SWAPPED

    def test_agreeing_record_unchanged(self, reference):
        record = make_record(200, "A", "G")
        result = reconcile([record], reference)

        assert result.records == [record]
        assert result.diagnostics == []

    def test_irreconcilable_record_omitted(self, reference):
        record = make_record(300, "A", "G")
        result = reconcile([record], reference)

        assert result.records == []
        assert len(result.diagnostics) == 1
        diagnostic = result.diagnostics[0]
        assert diagnostic.classification is Classification.IRRECONCILABLE
        assert diagnostic.reason is DropReason.REFERENCE_MISMATCH
        assert diagnostic.reference_base == "C"
        assert diagnostic.stated_ref == "A"
        assert diagnostic.stated_alt == "G"

    def test_order_and_counts(self, reference):
        records = [make_record(100, "A", "G"), make_record(200, "A", "G"), make_record(300, "A", "G")]
        result = reconcile(records, reference)

        assert [r.pos for r in result.records] == [100, 200]
        assert result.n_input == 3
        assert result.n_agree == 1
        assert result.n_swapped == 1
        assert result.n_dropped == 1
        assert len(result.records) == result.n_input - result.n_dropped

    def test_diagnostics_carry_identifier_and_line_number(self, reference):
        records = [make_record(200, "A", "G"), make_record(100, "A", "G", id="TP100")]
        result = reconcile(records, reference)

        assert result.diagnostics[0].record_id == "TP100"
        assert result.diagnostics[0].line_number == 2

    def test_input_records_not_mutated(self, reference):
        record = make_record(100, "A", "G")
        reconcile([record], reference)
        assert record.ref == "A"
        assert record.alt == "G"


class TestLookupFailure:
    """A failed reference lookup drops only that record."""

    def test_unknown_chromosome(self):
        reference = make_reference({100: "G"})
        records = [make_record(100, "A", "G", chrom="9"), make_record(100, "G", "A")]

        result = reconcile(records, reference)

        assert [r.chrom for r in result.records] == ["1"]
        diagnostic = result.diagnostics[0]
        assert diagnostic.classification is Classification.IRRECONCILABLE
        assert diagnostic.reason is DropReason.LOOKUP_FAILED
        assert diagnostic.reference_base is None
        assert result.n_lookup_failed == 1

    def test_position_past_end_of_sequence(self):
        reference = make_reference({}, length=50)
        result = reconcile([make_record(51, "A", "G")], reference)

        assert result.records == []
        assert result.diagnostics[0].reason is DropReason.LOOKUP_FAILED

    def test_lookup_failure_logged_distinctly(self, caplog):
        reference = make_reference({100: "G"})
        with caplog.at_level(logging.WARNING, logger="vcf_refalt_fixer.reconciler"):
            reconcile([make_record(5, "A", "G", chrom="9"), make_record(100, "A", "C")], reference)

        text = caplog.text
        assert "could not be checked" in text
        assert "Reference lookup failed for 9:5" in text
        assert "Something is wrong with this marker" in text


class TestIndels:
    """Multi-base alleles compare by exact string equality."""

    def test_deletion_agrees(self):
        reference = make_reference({400: "ACG"})
        record = make_record(400, "AC", "A")
        assert reconcile([record], reference).records == [record]

    def test_insertion_swapped(self):
        reference = make_reference({400: "ACG"})
        result = reconcile([make_record(400, "T", "ACG")], reference)

        fixed = result.records[0]
        assert fixed.ref == "ACG"
        assert fixed.alt == "T"


class TestIdempotence:
    """Re-running on corrected output changes nothing."""

    @given(
        data=st.lists(
            st.tuples(st.sampled_from(BASES), st.sampled_from(BASES), st.sampled_from(BASES)),
            min_size=1,
            max_size=30,
        )
    )
    @settings(max_examples=50)
    def test_second_pass_is_clean(self, data):
        sequence = "".join(true_base for _, _, true_base in data)
        reference = InMemoryReference({"1": sequence})
        records = [
            make_record(i + 1, ref, alt) for i, (ref, alt, _) in enumerate(data)
        ]

        first = reconcile(records, reference)
        second = reconcile(first.records, reference)

        assert second.diagnostics == []
        assert second.records == first.records
        n_irreconcilable = sum(
            1 for ref, alt, true_base in data if ref != true_base and alt != true_base
        )
        assert len(first.records) == len(records) - n_irreconcilable


class TestParallelReconcile:
    """Threaded reconciliation matches the sequential run."""

    def test_workers_preserve_order_and_diagnostics(self):
        reference = make_reference({100: "G", 200: "A", 300: "C"})
        records = []
        for i in range(60):
            records.extend([
                make_record(100, "A", "G", id=f"a{i}"),
                make_record(200, "A", "G", id=f"b{i}"),
                make_record(300, "A", "G", id=f"c{i}"),
            ])

        sequential = reconcile(records, reference)
        parallel = reconcile(records, reference, workers=4)

        assert parallel.records == sequential.records
        assert parallel.diagnostics == sequential.diagnostics


class TestFormatDiagnostic:
    """Operator-facing diagnostic text."""

    def test_swapped_line(self):
        reference = make_reference({100: "G"})
        _, diagnostic = reconcile_record(make_record(100, "A", "G", id="M1"), 7, reference)
        assert format_diagnostic(diagnostic) == "M1 (Line = 7) is not in correct Ref/Alt! Fixing!"

    def test_irreconcilable_block(self):
        reference = make_reference({300: "C"})
        _, diagnostic = reconcile_record(make_record(300, "A", "G", id="M3"), 3, reference)
        text = format_diagnostic(diagnostic)

        assert "M3 (Line = 3) is not in correct Ref/Alt!" in text
        assert "states C is the correct allele" in text
        assert "Ref=A and Alt=G" in text
        assert "Omitting from the final VCF" in text


class TestTransformedRecords:
    """Records are looked up under transformed names but reported as in the input."""

    def test_unplaced_contig_looked_up_and_reported(self):
        header = HeaderBlock(lines=VCFGenerator.header_lines(["1", "UNKNOWN"]))
        store = VariantStore(
            header=header, records=[make_record(5, "G", "A", chrom="UNKNOWN", id="UNKNOWN_5")]
        )
        reference = InMemoryReference({"Chr1": "T" * 10, "ChrUnknown": "TTTTATTTTT"})

        store.apply(choose_transforms(store, FixerConfig(), reference.contig_names))
        assert store.records[0].chrom in store.contig_ids

        result = reconcile(store.records, reference, transforms=store.transforms)

        assert result.n_lookup_failed == 0
        assert [(r.chrom, r.ref, r.alt) for r in result.records] == [("ChrUnknown", "A", "G")]
        diagnostic = result.diagnostics[0]
        assert diagnostic.classification is Classification.SWAPPED
        assert diagnostic.chrom == "UNKNOWN"
        assert diagnostic.record_id == "UNKNOWN_5"

    def test_restore_identifiers(self):
        reference = make_reference({100: "G"}, chrom="Chr1")
        transforms = [ContigPrefixTransform(), PlaceholderTokenTransform()]
        record = make_record(100, "A", "G", chrom="Chr1", id="Unknown_100")

        _, diagnostic = reconcile_record(record, 4, reference)
        restored = restore_identifiers(diagnostic, transforms)

        assert (restored.chrom, restored.record_id) == ("1", "UNKNOWN_100")
        assert restored.pos == 100
        assert restored.line_number == 4
        assert restore_identifiers(diagnostic, []) is diagnostic

    def test_logged_with_input_identifiers(self, caplog):
        reference = make_reference({100: "G"}, chrom="Chr1")
        record = make_record(100, "A", "G", chrom="Chr1", id="S1_100")

        with caplog.at_level(logging.INFO, logger="vcf_refalt_fixer.reconciler"):
            reconcile([record], reference, transforms=[ContigPrefixTransform()])

        assert "S1_100 (Line = 1) is not in correct Ref/Alt! Fixing!" in caplog.text
