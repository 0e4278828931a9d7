"""
Unit tests for the incremental quadratic-funding tally.

This module tests the integer square root, vote validation, the incremental
aggregate updates, alpha-weighted funding and the optimal alpha solver.
"""

import logging

logger = logging.getLogger(__name__)
import math

import pytest

from quadalloc.allocation.tally import (
    MAX_UINT256,
    ProjectTally,
    QuadraticTally,
    TallyResult,
    calculate_optimal_alpha,
    isqrt,
)
from quadalloc.errors.exceptions import ArithmeticSafetyError, ValidationError


class TestIsqrt:
    """Test integer square root."""

    def test_perfect_squares(self):
        """Test perfect squares return their exact root."""
        for root in [0, 1, 2, 3, 10, 12345, 10**18]:
            assert isqrt(root * root) == root

    def test_floor_for_non_squares(self):
        """Test non-squares round down."""
        assert isqrt(2) == 1
        assert isqrt(3) == 1
        assert isqrt(8) == 2
        assert isqrt(99) == 9
        assert isqrt(10**20 + 1) == 10**10

    def test_matches_math_isqrt(self):
        """Test agreement with the standard library for small values."""
        for x in range(0, 5000):
            assert isqrt(x) == math.isqrt(x)

    def test_large_value(self):
        """Test the largest representable value."""
        assert isqrt(MAX_UINT256) == math.isqrt(MAX_UINT256)

    def test_negative_rejected(self):
        """Test negative input raises validation error."""
        with pytest.raises(ValidationError):
            isqrt(-1)


class TestProcessVote:
    """Test validated vote processing."""

    def test_single_project_full_quadratic(self):
        """Test three votes on one project with alpha = 1."""
        tally = QuadraticTally(1, 1)
        tally.process_vote(1, 100, 10)
        tally.process_vote(1, 400, 20)
        tally.process_vote(1, 900, 30)

        result = tally.get_tally(1)
        assert result.sum_square_roots == 60
        assert result.sum_contributions == 1400
        assert result.quadratic_funding == 3600
        assert result.linear_funding == 0
        assert result.total_funding == 3600
        assert tally.total_funding == 3600

    def test_single_project_pure_linear(self):
        """Test the same votes with alpha = 0 fund only contributions."""
        tally = QuadraticTally(0, 1)
        tally.process_vote(1, 100, 10)
        tally.process_vote(1, 400, 20)
        tally.process_vote(1, 900, 30)

        result = tally.get_tally(1)
        assert result.quadratic_funding == 0
        assert result.linear_funding == 1400
        assert tally.total_funding == 1400

    def test_zero_contribution_rejected(self):
        """Test zero contribution is rejected."""
        tally = QuadraticTally()
        with pytest.raises(ValidationError):
            tally.process_vote(1, 0, 1)

    def test_zero_weight_rejected(self):
        """Test zero weight is rejected."""
        tally = QuadraticTally()
        with pytest.raises(ValidationError):
            tally.process_vote(1, 100, 0)

    def test_over_claimed_weight_rejected(self):
        """Test weight whose square exceeds the contribution is rejected."""
        tally = QuadraticTally()
        with pytest.raises(ValidationError):
            tally.process_vote(1, 100, 11)

    def test_under_claim_within_tolerance(self):
        """Test weight up to 10% below the root is accepted."""
        tally = QuadraticTally()
        tally.process_vote(1, 100, 9)

        result = tally.get_tally(1)
        assert result.sum_square_roots == 9
        assert result.sum_contributions == 100

    def test_under_claim_beyond_tolerance(self):
        """Test weight more than 10% below the root is rejected."""
        tally = QuadraticTally()
        with pytest.raises(ValidationError):
            tally.process_vote(1, 100, 8)

    def test_non_square_contribution(self):
        """Test a contribution that is not a perfect square."""
        tally = QuadraticTally()
        tally.process_vote(1, 101, 10)
        assert tally.get_tally(1).sum_contributions == 101

    def test_weight_square_overflow(self):
        """Test a weight whose square overflows raises arithmetic error."""
        tally = QuadraticTally()
        with pytest.raises(ArithmeticSafetyError):
            tally.process_vote(1, MAX_UINT256, 2**129)

    def test_rejected_vote_leaves_tally_unchanged(self):
        """Test failed validation has no effect."""
        tally = QuadraticTally()
        tally.process_vote(1, 25, 5)
        with pytest.raises(ValidationError):
            tally.process_vote(1, 25, 6)

        assert tally.get_tally(1).sum_square_roots == 5
        assert tally.total_quadratic_sum == 25
        assert tally.total_linear_sum == 25

    @pytest.mark.parametrize(
        "contribution,weight", [(25.0, 5), (25, 5.0), (True, True), (4, True), ("25", 5)]
    )
    def test_non_integer_rejected(self, contribution, weight):
        """Test floats, bools and strings are not accepted as amounts."""
        tally = QuadraticTally()
        with pytest.raises(ValidationError):
            tally.process_vote(1, contribution, weight)
        assert 1 not in tally.projects
        assert tally.total_linear_sum == 0


class TestIncrementalUpdate:
    """Test O(1) aggregate maintenance."""

    def test_aggregates_across_projects(self):
        """Test global sums equal per-project recomputation."""
        tally = QuadraticTally()
        tally.process_vote_unchecked(1, 25, 5)
        tally.process_vote_unchecked(2, 16, 4)
        tally.process_vote_unchecked(1, 9, 3)

        assert tally.get_tally(1).sum_square_roots == 8
        assert tally.get_tally(1).sum_contributions == 34
        assert tally.get_tally(2).sum_square_roots == 4
        assert tally.total_quadratic_sum == 8 * 8 + 4 * 4
        assert tally.total_linear_sum == 34 + 16

    def test_quadratic_underflow_detected(self):
        """Test a corrupted quadratic aggregate is caught before subtracting."""
        tally = QuadraticTally()
        tally.process_vote_unchecked(1, 25, 5)
        tally.total_quadratic_sum = 10

        with pytest.raises(ArithmeticSafetyError):
            tally.process_vote_unchecked(1, 9, 3)
        assert tally.get_tally(1).sum_square_roots == 5

    def test_linear_underflow_detected(self):
        """Test a corrupted linear aggregate is caught before subtracting."""
        tally = QuadraticTally()
        tally.process_vote_unchecked(1, 25, 5)
        tally.total_linear_sum = 10

        with pytest.raises(ArithmeticSafetyError):
            tally.process_vote_unchecked(1, 9, 3)

    def test_project_overflow_detected(self):
        """Test project sums beyond the arithmetic ceiling are rejected."""
        tally = QuadraticTally()
        tally.process_vote_unchecked(1, 1, 2**127)
        with pytest.raises(ArithmeticSafetyError):
            tally.process_vote_unchecked(1, 1, 2**127)
        assert tally.get_tally(1).sum_square_roots == 2**127

    def test_total_funding_with_half_alpha(self):
        """Test the stored total funding uses the current alpha."""
        tally = QuadraticTally(1, 2)
        tally.process_vote_unchecked(1, 100, 10)
        assert tally.total_funding == 100 // 2 + 100 // 2


class TestGetTally:
    """Test per-project tally views."""

    def test_unknown_project_is_zero(self):
        """Test a project without votes has a zero tally."""
        tally = QuadraticTally()
        result = tally.get_tally(42)
        assert result == TallyResult(0, 0, 0, 0)
        assert 42 not in tally.projects

    def test_fractional_alpha_floors_each_part(self):
        """Test quadratic and linear parts are floored separately."""
        tally = QuadraticTally(1, 3)
        tally.process_vote_unchecked(1, 100, 10)

        result = tally.get_tally(1)
        assert result.quadratic_funding == 33
        assert result.linear_funding == 66
        assert result.total_funding == 99

    def test_project_tally_defaults(self):
        """Test ProjectTally starts empty."""
        project = ProjectTally()
        assert project.sum_contributions == 0
        assert project.sum_square_roots == 0


class TestSetAlpha:
    """Test alpha updates."""

    def test_set_alpha_recomputes_funding(self):
        """Test changing alpha recomputes the total and returns the old value."""
        tally = QuadraticTally()
        tally.process_vote_unchecked(1, 100, 10)
        tally.process_vote_unchecked(2, 100, 10)
        assert tally.total_funding == 200

        previous = tally.set_alpha(0, 1)
        assert previous == (1, 1)
        assert tally.alpha == (0, 1)
        assert tally.total_funding == 200

        tally.process_vote_unchecked(1, 100, 10)
        tally.set_alpha(1, 1)
        assert tally.total_funding == 400 + 100

    @pytest.mark.parametrize(
        "numerator,denominator",
        [(1, 0), (2, 1), (-1, 1), (0, -5), (0.5, 1), (1, 2.0), (True, 1), (1, True)],
    )
    def test_invalid_alpha_rejected(self, numerator, denominator):
        """Test invalid fractions are rejected without changing alpha."""
        tally = QuadraticTally(1, 2)
        with pytest.raises(ValidationError):
            tally.set_alpha(numerator, denominator)
        assert tally.alpha == (1, 2)

    def test_invalid_initial_alpha(self):
        """Test constructor validates alpha."""
        with pytest.raises(ValidationError):
            QuadraticTally(3, 2)


class TestOptimalAlpha:
    """Test the optimal alpha solver."""

    def test_partial_alpha(self):
        """Test assets between the linear and quadratic totals."""
        numerator, denominator = calculate_optimal_alpha(500, 3600, 1400, 1000)
        assert (numerator, denominator) == (100, 2200)
        # alpha * Q + (1 - alpha) * L == T exactly
        assert numerator * 3600 + (denominator - numerator) * 1400 == 1500 * denominator

    def test_no_quadratic_advantage(self):
        """Test Q <= L gives alpha 0."""
        assert calculate_optimal_alpha(1000, 500, 500, 1000) == (0, 1)
        assert calculate_optimal_alpha(1000, 400, 500, 1000) == (0, 1)

    def test_assets_below_linear(self):
        """Test assets not covering the linear sum give alpha 0."""
        assert calculate_optimal_alpha(100, 3600, 1400, 100) == (0, 1)
        assert calculate_optimal_alpha(400, 3600, 1400, 1000) == (0, 1)

    def test_assets_cover_quadratic(self):
        """Test excess assets give alpha 1."""
        assert calculate_optimal_alpha(5000, 3600, 1400, 0) == (1, 1)
        assert calculate_optimal_alpha(2600, 3600, 1400, 1000) == (1, 1)

    def test_empty_tally(self):
        """Test an empty tally gives alpha 0."""
        assert calculate_optimal_alpha(1000, 0, 0, 0) == (0, 1)

    def test_negative_inputs_rejected(self):
        """Test negative inputs raise validation error."""
        with pytest.raises(ValidationError):
            calculate_optimal_alpha(-1, 3600, 1400, 0)
        with pytest.raises(ValidationError):
            calculate_optimal_alpha(0, 3600, 1400, -1)

    def test_non_integer_inputs_rejected(self):
        """Test floats and bools are rejected."""
        with pytest.raises(ValidationError):
            calculate_optimal_alpha(500.0, 3600, 1400, 1000)
        with pytest.raises(ValidationError):
            calculate_optimal_alpha(500, 3600, 1400.5, 1000)
        with pytest.raises(ValidationError):
            calculate_optimal_alpha(True, 3600, 1400, 1000)
