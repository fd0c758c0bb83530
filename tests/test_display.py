"""Tests for the display module."""

import numpy as np
import pytest

from nested_randtests import RandTestResult, print_randtest_table
from nested_randtests.display import (
    _SCHEME_LABELS,
    _fmt_p_value,
    _fmt_val,
    _nrep_to_resolve,
    _straddled_threshold,
)


def _result(**overrides):
    fields = dict(
        observed=1.25,
        simulated=np.linspace(0.0, 1.0, 99),
        alternative="greater",
        p_value=0.005,
        p_value_ci=(0.002, 0.009),
        confidence_level=0.95,
        expectation=0.5,
        variance=0.085,
        std_obs=2.57,
        n_requested=99,
        n_degenerate=0,
        level=1,
        n_levels=2,
        scheme="within_group",
        statistic_row=6,
        formula="QE",
        option="normed1",
        metmean="harmonic",
    )
    fields.update(overrides)
    return RandTestResult(**fields)


class TestHelpers:
    def test_fmt_p_value_markers(self):
        assert _fmt_p_value(0.0004) == "0.000 (***)"
        assert _fmt_p_value(0.005) == "0.005 (**)"
        assert _fmt_p_value(0.02) == "0.020 (*)"
        assert _fmt_p_value(0.5) == "0.500 (ns)"

    def test_fmt_val_nan(self):
        assert _fmt_val(float("nan")) == "N/A"
        assert _fmt_val(None) == "N/A"
        assert _fmt_val(0.5) == "0.5000"

    def test_straddled_threshold(self):
        thresholds = (0.05, 0.01, 0.001)
        assert _straddled_threshold(0.05, (0.03, 0.07), thresholds) == 0.05
        assert _straddled_threshold(0.065, (0.06, 0.07), thresholds) is None
        # Both 0.01 and 0.05 are inside; the nearer one is reported.
        assert _straddled_threshold(0.008, (0.004, 0.06), thresholds) == 0.01

    def test_nrep_to_resolve_bounds(self):
        assert _nrep_to_resolve(0.5, 0.05, 0.95) == 100
        assert _nrep_to_resolve(0.05, 0.05, 0.95) == 10_000_000
        assert 100 < _nrep_to_resolve(0.06, 0.05, 0.95) < 10_000_000

    def test_nrep_grows_with_confidence(self):
        assert _nrep_to_resolve(0.06, 0.05, 0.99) > _nrep_to_resolve(0.06, 0.05, 0.95)


class TestPrintRandtestTable:
    def test_sections(self, capsys):
        print_randtest_table(_result())
        out = capsys.readouterr().out
        assert "Nested Diversity Permutation Test" in out
        assert "sites within level-1 groups" in out
        assert "Level:" in out and "1 of 3" in out
        assert "p-Value:" in out and "(**)" in out
        assert "Std. Obs.:" in out
        assert "Notes" not in out
        assert "(***) p < 0.001" in out

    def test_nan_summary(self, capsys):
        print_randtest_table(
            _result(simulated=np.array([]), expectation=float("nan"),
                    variance=float("nan"), std_obs=float("nan"),
                    p_value=1.0, p_value_ci=(0.0, 1.0))
        )
        assert "N/A" in capsys.readouterr().out

    def test_degenerate_note(self, capsys):
        print_randtest_table(_result(n_degenerate=7, simulated=np.zeros(92)))
        out = capsys.readouterr().out
        assert "Notes" in out
        assert "7 of 99 repetitions" in out
        assert "at or below tol" in out
        assert "zero total" not in out

    def test_straddle_note(self, capsys):
        print_randtest_table(_result(p_value=0.05, p_value_ci=(0.02, 0.09)))
        out = capsys.readouterr().out
        assert "[!]" in out
        assert "consider nrep" in out

    @pytest.mark.parametrize("scheme", sorted(_SCHEME_LABELS))
    def test_scheme_label_printed_in_full(self, capsys, scheme):
        print_randtest_table(_result(scheme=scheme))
        assert _SCHEME_LABELS[scheme] in capsys.readouterr().out

    def test_lines_fit_80_columns(self, capsys):
        print_randtest_table(_result(n_degenerate=7, p_value=0.05, p_value_ci=(0.02, 0.09)))
        assert all(len(line) <= 80 for line in capsys.readouterr().out.splitlines())

    def test_custom_title(self, capsys):
        print_randtest_table(_result(), title="Fish communities")
        assert "Fish communities" in capsys.readouterr().out
