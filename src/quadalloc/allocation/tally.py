"""
Incremental quadratic-funding tally.

Each vote updates the per-project sums and the global aggregates in O(1)
using (S + w)^2 = S^2 + 2Sw + w^2, so the aggregates always equal a full
recomputation over every vote ever processed without rescanning history.

Funding for a project with contributions c_i is blended by alpha = a/D:

    quadratic = floor((sum sqrt(c_i))^2 * a / D)
    linear    = floor((sum c_i) * (D - a) / D)

Per-project floors make the sum over projects fall short of the global
figure by at most 2(|P| - 1); pooled funds are never over-distributed.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from ..errors.exceptions import ArithmeticSafetyError, ValidationError

MAX_UINT256 = 2**256 - 1


def require_int(value: Any, field: str) -> int:
    """Reject anything that is not a plain integer; bools included."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"{field} must be an integer", field=field, value=value, expected="int"
        )
    return value


def isqrt(x: int) -> int:
    """Integer square root by the Babylonian method.

    Starts from (x + 1) // 2 and converges monotonically downward to
    floor(sqrt(x)).
    """
    if x < 0:
        raise ValidationError("Square root of negative value", field="x", value=x)
    if x == 0:
        return 0
    z = (x + 1) // 2
    y = x
    while z < y:
        y = z
        z = (x // z + z) // 2
    return y


def calculate_optimal_alpha(
    matching_pool: int, quadratic_sum: int, linear_sum: int, user_deposits: int
) -> Tuple[int, int]:
    """Solve for the alpha that makes total funding equal the available assets.

    With T = matching_pool + user_deposits, Q = quadratic_sum, L = linear_sum:

        alpha * Q + (1 - alpha) * L = T  =>  alpha = (T - L) / (Q - L)

    Returns (numerator, denominator) as an exact fraction. Alpha is 0 when
    there is no quadratic advantage (Q <= L) or the assets cannot cover the
    linear part (T <= L), and 1 when the assets cover the full quadratic
    requirement.
    """
    for name, value in (
        ("matching_pool", matching_pool),
        ("quadratic_sum", quadratic_sum),
        ("linear_sum", linear_sum),
        ("user_deposits", user_deposits),
    ):
        require_int(value, name)
        if value < 0:
            raise ValidationError(f"{name} cannot be negative", field=name, value=value)

    total_assets = matching_pool + user_deposits

    if quadratic_sum <= linear_sum:
        return 0, 1

    if total_assets <= linear_sum:
        return 0, 1

    numerator = total_assets - linear_sum
    denominator = quadratic_sum - linear_sum

    if numerator >= denominator:
        return 1, 1

    return numerator, denominator


@dataclass
class ProjectTally:
    """Running sums for one project. Never deleted, even if canceled."""

    sum_contributions: int = 0
    sum_square_roots: int = 0


@dataclass(frozen=True)
class TallyResult:
    """Snapshot of a project's tally with alpha-weighted funding."""

    sum_contributions: int
    sum_square_roots: int
    quadratic_funding: int
    linear_funding: int

    @property
    def total_funding(self) -> int:
        return self.quadratic_funding + self.linear_funding


class QuadraticTally:
    """Per-project incremental sums plus global quadratic/linear aggregates."""

    def __init__(self, alpha_numerator: int = 1, alpha_denominator: int = 1):
        self._validate_alpha(alpha_numerator, alpha_denominator)
        self.projects: Dict[int, ProjectTally] = {}
        self.total_quadratic_sum = 0
        self.total_linear_sum = 0
        self.alpha_numerator = alpha_numerator
        self.alpha_denominator = alpha_denominator
        self.total_funding = 0

    @property
    def alpha(self) -> Tuple[int, int]:
        return self.alpha_numerator, self.alpha_denominator

    def process_vote(self, project_id: int, contribution: int, vote_weight: int) -> None:
        """Validate a (contribution, weight) pair and record it.

        The weight may under-claim the square root of the contribution by up
        to 10% but may never exceed it.
        """
        require_int(contribution, "contribution")
        require_int(vote_weight, "vote_weight")
        if contribution <= 0:
            raise ValidationError(
                "Contribution must be positive", field="contribution", value=contribution
            )
        if vote_weight <= 0:
            raise ValidationError(
                "Vote weight must be positive", field="vote_weight", value=vote_weight
            )

        weight_squared = vote_weight * vote_weight
        if weight_squared > MAX_UINT256:
            raise ArithmeticSafetyError(
                f"Vote weight {vote_weight} overflows when squared",
                operation="square",
            )
        if weight_squared > contribution:
            raise ValidationError(
                "Vote weight squared exceeds contribution",
                field="vote_weight",
                value=vote_weight,
                expected=f"weight^2 <= {contribution}",
            )

        actual_sqrt = isqrt(contribution)
        tolerance = actual_sqrt // 10
        if vote_weight < actual_sqrt - tolerance or vote_weight > actual_sqrt:
            raise ValidationError(
                "Vote weight does not match square root of contribution",
                field="vote_weight",
                value=vote_weight,
                expected=f"[{actual_sqrt - tolerance}, {actual_sqrt}]",
            )

        self.process_vote_unchecked(project_id, contribution, vote_weight)

    def process_vote_unchecked(
        self, project_id: int, contribution: int, vote_weight: int
    ) -> None:
        """Record a vote whose contribution is already known to equal weight^2."""
        project = self.projects.get(project_id, ProjectTally())

        old_square_roots = project.sum_square_roots
        old_contributions = project.sum_contributions
        new_square_roots = old_square_roots + vote_weight
        new_contributions = old_contributions + contribution

        old_quadratic = old_square_roots * old_square_roots
        new_quadratic = new_square_roots * new_square_roots
        if new_quadratic > MAX_UINT256 or new_contributions > MAX_UINT256:
            raise ArithmeticSafetyError(
                f"Project {project_id} tally overflows", operation="project_update"
            )

        # Remove the project's old terms before adding the new ones.
        if self.total_quadratic_sum < old_quadratic:
            raise ArithmeticSafetyError(
                "Quadratic aggregate underflow", operation="quadratic_subtract"
            )
        if self.total_linear_sum < old_contributions:
            raise ArithmeticSafetyError(
                "Linear aggregate underflow", operation="linear_subtract"
            )

        total_quadratic = self.total_quadratic_sum - old_quadratic + new_quadratic
        total_linear = self.total_linear_sum - old_contributions + new_contributions
        if total_quadratic > MAX_UINT256 or total_linear > MAX_UINT256:
            raise ArithmeticSafetyError(
                "Global aggregate overflows", operation="aggregate_add"
            )

        project.sum_square_roots = new_square_roots
        project.sum_contributions = new_contributions
        self.projects[project_id] = project
        self.total_quadratic_sum = total_quadratic
        self.total_linear_sum = total_linear
        self.total_funding = self._weighted_total_funding()

        logger.debug(
            f"Tally project {project_id}: +{contribution} contribution, "
            f"+{vote_weight} weight, total funding {self.total_funding}"
        )

    def get_tally(self, project_id: int) -> TallyResult:
        """Project sums with alpha-weighted funding computed on demand."""
        project = self.projects.get(project_id, ProjectTally())
        numerator, denominator = self.alpha
        quadratic = (
            project.sum_square_roots * project.sum_square_roots * numerator
        ) // denominator
        linear = (project.sum_contributions * (denominator - numerator)) // denominator
        return TallyResult(
            sum_contributions=project.sum_contributions,
            sum_square_roots=project.sum_square_roots,
            quadratic_funding=quadratic,
            linear_funding=linear,
        )

    def set_alpha(self, numerator: int, denominator: int) -> Tuple[int, int]:
        """Change the quadratic/linear blend and return the previous alpha."""
        self._validate_alpha(numerator, denominator)
        previous = self.alpha
        self.alpha_numerator = numerator
        self.alpha_denominator = denominator
        self.total_funding = self._weighted_total_funding()
        logger.info(
            f"Alpha updated from {previous[0]}/{previous[1]} to {numerator}/{denominator}"
        )
        return previous

    def _weighted_total_funding(self) -> int:
        numerator, denominator = self.alpha
        return (self.total_quadratic_sum * numerator) // denominator + (
            self.total_linear_sum * (denominator - numerator)
        ) // denominator

    @staticmethod
    def _validate_alpha(numerator: int, denominator: int) -> None:
        require_int(numerator, "alpha_numerator")
        require_int(denominator, "alpha_denominator")
        if denominator <= 0:
            raise ValidationError(
                "Alpha denominator must be positive",
                field="alpha_denominator",
                value=denominator,
            )
        if numerator < 0 or numerator > denominator:
            raise ValidationError(
                "Alpha numerator must be between 0 and the denominator",
                field="alpha_numerator",
                value=numerator,
                expected=f"0..{denominator}",
            )
