"""End-to-end tests for randtest_eqrs_intra."""

import logging
import math

import numpy as np
import pandas as pd
import pytest

from nested_randtests import (
    InconsistentHierarchyError,
    InvalidLevelError,
    InvalidStructureTypeError,
    RandTestResult,
    RowAlignmentWarning,
    RowCountMismatchError,
    monte_carlo_p_value,
    randtest_eqrs_intra,
)


class TestDegenerateNulls:
    """Cases where every permutation reproduces the observed data."""

    def test_identical_sites(self, statistic):
        table = pd.DataFrame(np.tile([1.0, 2.0, 3.0], (6, 1)))
        result = randtest_eqrs_intra(
            table, statistic=statistic, nrep=99, alternative="greater", random_state=0
        )
        assert result.scheme == "free"
        assert result.n_simulated == 99
        np.testing.assert_array_equal(result.simulated, np.full(99, result.observed))
        assert result.p_value == 1.0

    def test_singleton_level_one_groups(self, abundance, statistic):
        structures = pd.DataFrame(
            {
                "site": [f"u{i}" for i in range(12)],
                "area": ["A"] * 6 + ["B"] * 6,
            },
            index=abundance.index,
        )
        result = randtest_eqrs_intra(
            abundance, None, structures, statistic=statistic, level=1, nrep=30, random_state=0
        )
        assert result.scheme == "within_group"
        np.testing.assert_array_equal(result.simulated, np.full(30, result.observed))

    def test_group_composition_statistic_at_level_one(self, abundance, hierarchy, statistic):
        # Relocating whole profiles within patches leaves every group
        # composition intact; only rounding differs between trials.
        result = randtest_eqrs_intra(
            abundance, None, hierarchy, statistic=statistic, level=1, nrep=50, random_state=0
        )
        np.testing.assert_allclose(result.simulated, result.observed, rtol=1e-12)
        assert result.p_value == 1.0

    def test_site_total_at_tol(self, statistic):
        table = pd.DataFrame([[0.25, 0.25], [1.0, 2.0], [3.0, 1.0], [2.0, 2.0]])
        structures = pd.DataFrame({"g": ["a", "a", "b", "b"]})
        result = randtest_eqrs_intra(
            table, None, structures, statistic=statistic, tol=0.5, nrep=25, random_state=0
        )
        assert result.n_simulated == 0
        assert result.n_degenerate == 25
        assert result.p_value == 1.0
        assert math.isnan(result.expectation)


class TestTinySites:
    """Sites with a positive total at or below tol."""

    def test_single_grouping_level_two(self, statistic):
        table = pd.DataFrame([[1e-9, 0.0], [1.0, 2.0], [3.0, 1.0], [2.0, 2.0]])
        structures = pd.DataFrame({"g": ["a", "a", "b", "b"]})
        result = randtest_eqrs_intra(
            table, None, structures, statistic=statistic, level=2, nrep=20, random_state=0
        )
        assert result.scheme == "whole_structure"
        assert result.n_degenerate == 0
        assert result.n_simulated == 20

    def test_top_level(self, abundance, hierarchy, statistic):
        table = abundance.copy()
        table.iloc[5] = [0.0, 0.0, 5e-9, 0.0, 0.0]
        result = randtest_eqrs_intra(
            table, None, hierarchy, statistic=statistic, level=4, nrep=20, random_state=0
        )
        assert result.scheme == "label_swap_general"
        assert result.n_degenerate == 0
        assert result.n_simulated == 20
        assert result.n_dropped_sites == 0


class TestValidationBeforeWork:
    """Input errors surface before the provider is called."""

    def test_level_too_high(self, abundance, hierarchy, counting_statistic):
        with pytest.raises(InvalidLevelError):
            randtest_eqrs_intra(
                abundance, None, hierarchy, statistic=counting_statistic, level=5
            )
        assert counting_statistic.n_calls == 0

    def test_level_without_structures(self, abundance, counting_statistic):
        with pytest.raises(InvalidLevelError):
            randtest_eqrs_intra(abundance, statistic=counting_statistic, level=2)
        assert counting_statistic.n_calls == 0

    def test_structures_wrong_type(self, abundance, counting_statistic):
        with pytest.raises(InvalidStructureTypeError):
            randtest_eqrs_intra(
                abundance, None, ["a"] * 12, statistic=counting_statistic
            )
        assert counting_statistic.n_calls == 0

    def test_row_count_mismatch(self, abundance, hierarchy, counting_statistic):
        with pytest.raises(RowCountMismatchError):
            randtest_eqrs_intra(
                abundance, None, hierarchy.iloc[:-1], statistic=counting_statistic
            )
        assert counting_statistic.n_calls == 0

    def test_not_nested(self, abundance, hierarchy, counting_statistic):
        broken = hierarchy.copy()
        broken.loc["s0", "region"] = "r4"
        with pytest.raises(InconsistentHierarchyError):
            randtest_eqrs_intra(abundance, None, broken, statistic=counting_statistic)
        assert counting_statistic.n_calls == 0

    @pytest.mark.parametrize(
        ("kwargs", "match"),
        [
            ({"formula": "Rao"}, "formula"),
            ({"option": "raw"}, "option"),
            ({"alternative": "two.sided"}, "alternative"),
            ({"metmean": "geometric"}, "metmean"),
            ({"nrep": 0}, "nrep"),
            ({"nrep": True}, "nrep"),
            ({"nrep": 9.5}, "nrep"),
            ({"tol": -1.0}, "tol"),
            ({"tol": float("nan")}, "tol"),
            ({"confidence_level": 1.0}, "confidence_level"),
        ],
    )
    def test_invalid_arguments(self, abundance, counting_statistic, kwargs, match):
        with pytest.raises(ValueError, match=match):
            randtest_eqrs_intra(abundance, statistic=counting_statistic, **kwargs)
        assert counting_statistic.n_calls == 0

    def test_statistic_not_callable(self, abundance):
        with pytest.raises(TypeError, match="callable"):
            randtest_eqrs_intra(abundance, statistic="QE")


class TestLevels:
    @pytest.mark.parametrize(
        ("level", "scheme", "row"),
        [
            (1, "within_group", 8),
            (2, "label_swap_within_parent", 7),
            (3, "label_swap_general", 6),
            (4, "label_swap_general", 1),
        ],
    )
    def test_every_level_runs(self, abundance, hierarchy, statistic, level, scheme, row):
        result = randtest_eqrs_intra(
            abundance, None, hierarchy, statistic=statistic, level=level, nrep=40, random_state=4
        )
        assert result.scheme == scheme
        assert result.statistic_row == row
        assert result.level == level
        assert result.n_levels == 3
        assert 0 < result.p_value <= 1
        assert result.n_simulated <= 40

    def test_single_grouping_level_two(self, abundance, hierarchy, statistic):
        result = randtest_eqrs_intra(
            abundance, None, hierarchy[["region"]], statistic=statistic, level=2, nrep=40
        )
        assert result.scheme == "whole_structure"
        assert result.statistic_row == 1

    def test_eq_option_row(self, abundance, hierarchy, statistic):
        result = randtest_eqrs_intra(
            abundance, None, hierarchy, statistic=statistic, option="eq", nrep=10
        )
        assert result.statistic_row == 6


class TestResultContents:
    def test_result_fields(self, abundance, hierarchy, statistic):
        result = randtest_eqrs_intra(
            abundance,
            None,
            hierarchy,
            statistic=statistic,
            level=2,
            nrep=50,
            alternative="two-sided",
            random_state=8,
        )
        assert isinstance(result, RandTestResult)
        assert result.p_value == monte_carlo_p_value(
            result.observed, result.simulated, "two-sided"
        )
        lo, hi = result.p_value_ci
        assert 0.0 <= lo <= hi <= 1.0
        assert result.expectation == pytest.approx(result.simulated.mean())
        assert result.call == {
            "function": "randtest_eqrs_intra",
            "formula": "QE",
            "option": "normed1",
            "level": 2,
            "nrep": 50,
            "alternative": "two-sided",
            "tol": 1e-8,
            "metmean": "harmonic",
            "random_state": 8,
        }

    def test_seed_sequence_not_recorded(self, abundance, statistic):
        seed = np.random.SeedSequence(1)
        result = randtest_eqrs_intra(abundance, statistic=statistic, nrep=5, random_state=seed)
        assert result.call["random_state"] is None

    def test_empty_sites_dropped(self, abundance, hierarchy, counting_statistic):
        table = abundance.copy()
        table.iloc[3] = 0.0
        result = randtest_eqrs_intra(
            table, None, hierarchy, statistic=counting_statistic, nrep=5, random_state=0
        )
        assert result.n_dropped_sites == 1
        for seen_table, _, seen_structures, _ in counting_statistic.calls:
            assert seen_table.shape == (11, 5)
            assert "s3" not in seen_table.index
            assert seen_structures.index.equals(seen_table.index)

    def test_provider_arguments(self, abundance, hierarchy, counting_statistic):
        dis = np.ones((5, 5)) - np.eye(5)
        numeric = hierarchy.apply(lambda col: pd.factorize(col)[0])
        randtest_eqrs_intra(
            abundance,
            dis,
            numeric,
            statistic=counting_statistic,
            formula="EDI",
            option="normed2",
            tol=1e-6,
            metmean="arithmetic",
            nrep=3,
            random_state=0,
        )
        assert counting_statistic.n_calls == 4
        for table, seen_dis, structures, kwargs in counting_statistic.calls:
            assert isinstance(table, pd.DataFrame)
            assert seen_dis is dis
            assert all(isinstance(v, str) for v in structures.to_numpy().ravel())
            assert kwargs == {
                "formula": "EDI",
                "option": "normed2",
                "tol": 1e-6,
                "metmean": "arithmetic",
            }

    def test_inputs_untouched(self, abundance, hierarchy, statistic):
        table, structures = abundance.copy(), hierarchy.copy()
        randtest_eqrs_intra(abundance, None, hierarchy, statistic=statistic, level=3, nrep=20)
        pd.testing.assert_frame_equal(abundance, table)
        pd.testing.assert_frame_equal(hierarchy, structures)


class TestReproducibility:
    def test_same_seed_same_result(self, abundance, hierarchy, statistic):
        kwargs = dict(statistic=statistic, level=2, nrep=80, random_state=21)
        a = randtest_eqrs_intra(abundance, None, hierarchy, **kwargs)
        b = randtest_eqrs_intra(abundance, None, hierarchy, **kwargs)
        np.testing.assert_array_equal(a.simulated, b.simulated)
        assert a.p_value == b.p_value

    def test_n_jobs_does_not_change_result(self, abundance, hierarchy, statistic):
        kwargs = dict(statistic=statistic, nrep=150, random_state=3)
        a = randtest_eqrs_intra(abundance, None, hierarchy, n_jobs=1, **kwargs)
        b = randtest_eqrs_intra(abundance, None, hierarchy, n_jobs=2, **kwargs)
        np.testing.assert_array_equal(a.simulated, b.simulated)


class TestWarningsAndLogging:
    def test_row_alignment_warning(self, abundance, hierarchy, statistic):
        shuffled = hierarchy.copy()
        shuffled.index = shuffled.index[::-1]
        with pytest.warns(RowAlignmentWarning):
            randtest_eqrs_intra(abundance, None, shuffled, statistic=statistic, nrep=5)

    def test_debug_logging(self, abundance, hierarchy, statistic, caplog):
        with caplog.at_level(logging.DEBUG, logger="nested_randtests"):
            randtest_eqrs_intra(abundance, None, hierarchy, statistic=statistic, nrep=5)
        assert "within_group" in caplog.text
