"""
Tests for the value types shared by filters and the pipeline.
"""
from decimal import Decimal

import pytest

from conftest import make_pool
from poolguard.errors import InvalidPoolError
from poolguard.models import ZERO_ADDRESS, Amount, AnalysisVerdict, FilterReport, FilterResult


class TestAmount:

    def test_from_ui_scales_to_raw_units(self):
        assert Amount.from_ui("20", 9) == Amount(20 * 10 ** 9, 9)
        assert Amount.from_ui(Decimal("0.5"), 2).raw == 50

    def test_from_ui_rejects_extra_precision(self):
        with pytest.raises(ValueError):
            Amount.from_ui("0.001", 2)

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            Amount(-1, 9)

    def test_comparison_across_decimals_is_exact(self):
        assert Amount(1_000, 3) == Amount(1, 0)
        assert Amount(999, 3) < Amount(1, 0)
        assert Amount(1_001, 3) > Amount(1, 0)

    def test_one_raw_unit_matters_at_large_values(self):
        """Floats cannot tell these apart; integer comparison must."""
        bound = Amount.from_ui("300000000000", 9)
        above = Amount(bound.raw + 1, 9)
        assert float(above.to_decimal()) == float(bound.to_decimal())
        assert above > bound

    def test_str_drops_trailing_zeros(self):
        assert str(Amount(50 * 10 ** 9, 9)) == "50"
        assert str(Amount(1_500_000_000, 9)) == "1.5"
        assert str(Amount(0, 9)) == "0"


class TestPoolIdentity:

    def test_valid_pool_builds(self):
        pool = make_pool()
        assert pool.base_mint != pool.quote_mint

    def test_zero_address_rejected(self):
        with pytest.raises(InvalidPoolError, match="lp_mint is the zero address"):
            make_pool(lp_mint=ZERO_ADDRESS)

    def test_empty_field_rejected(self):
        with pytest.raises(InvalidPoolError, match="quote_vault is missing"):
            make_pool(quote_vault="")

    def test_invalid_base58_rejected(self):
        with pytest.raises(InvalidPoolError, match="not a valid address"):
            make_pool(base_mint="not-a-key")

    def test_pool_is_immutable(self):
        pool = make_pool()
        with pytest.raises(AttributeError):
            pool.base_mint = "x"


class TestAnalysisVerdict:

    def _report(self, name, ok):
        return FilterReport.from_result(name, FilterResult(ok=ok, message=f"{name} message"))

    def test_all_passed_is_derived_from_reports(self):
        verdict = AnalysisVerdict("pool", (self._report("a", True), self._report("b", True)))
        assert verdict.all_passed
        assert verdict.first_failure is None

    def test_any_failure_fails_verdict(self):
        verdict = AnalysisVerdict("pool", (self._report("a", True), self._report("b", False),
                                           self._report("c", False)))
        assert not verdict.all_passed
        assert [r.name for r in verdict.failed] == ["b", "c"]
        assert verdict.first_failure.name == "b"

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError):
            AnalysisVerdict("pool", (self._report("a", True), self._report("a", False)))

    def test_report_details_carry_message_and_metrics(self):
        report = FilterReport.from_result("Holder Filter", FilterResult(True, "ok", {"holder_count": 3}))
        assert report.details == {"message": "ok", "holder_count": 3}

    def test_report_details_are_read_only(self):
        metrics = {"holder_count": 3}
        report = FilterReport.from_result("Holder Filter", FilterResult(False, "few", metrics))
        metrics["holder_count"] = 999
        with pytest.raises(TypeError):
            report.details["message"] = "passed"
        assert report.details["holder_count"] == 3

    def test_verdict_is_hashable(self):
        reports = [self._report("a", True), self._report("b", False)]
        verdict = AnalysisVerdict("pool", reports)
        assert isinstance(verdict.reports, tuple)
        assert hash(verdict) == hash(AnalysisVerdict("pool", tuple(reports)))
        assert verdict == AnalysisVerdict("pool", tuple(reports))

    def test_to_dict(self):
        verdict = AnalysisVerdict("pool", (self._report("a", False),))
        assert verdict.to_dict() == {
            "pool_id": "pool",
            "all_passed": False,
            "reports": [{"name": "a", "passed": False, "details": {"message": "a message"}}],
        }
