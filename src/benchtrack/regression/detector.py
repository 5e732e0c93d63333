"""Regression detector for benchmark runs.

This module provides the RegressionDetector class, which compares every
lane of a new run against the most recent prior run carrying that lane.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from benchtrack.core.exceptions import BaselineZeroError, DataError
from benchtrack.core.types import Direction
from benchtrack.regression.models import (
    ComparisonResult,
    LaneVerdict,
    RegressionThresholds,
    Verdict,
)

if TYPE_CHECKING:
    from benchtrack.core.types import BenchmarkRun, BenchResult, LaneKey, Series


def improvement_percent(baseline: float, current: float, direction: Direction) -> float:
    """Percent change normalized so that positive always means "got better".

    The baseline magnitude is the denominator, so negative baselines keep
    the sign convention.

    Args:
        baseline: Baseline value.
        current: New value.
        direction: Which way the metric improves.

    Returns:
        Normalized improvement in percent.

    Raises:
        BaselineZeroError: If the baseline is zero.

    Example:
        >>> round(improvement_percent(1.06, 1.05, Direction.SMALLER_IS_BETTER), 2)
        0.94
        >>> round(improvement_percent(44130.09, 44818.18, Direction.BIGGER_IS_BETTER), 2)
        1.56
    """
    if baseline == 0:
        msg = "Baseline value is zero; percent change is undefined"
        raise BaselineZeroError(msg)

    delta = current - baseline if direction is Direction.BIGGER_IS_BETTER else baseline - current
    return delta / abs(baseline) * 100


class RegressionDetector:
    """Detect regressions of a run against the series it is appended to.

    Each lane (metric name + occurrence within the run) is compared against
    the most recent prior run that carries the same lane. Lane-level
    problems (zero baseline, changed unit) become verdicts and never stop
    the other lanes from being evaluated.

    Attributes:
        thresholds: Thresholds for regression detection.

    Example:
        >>> detector = RegressionDetector(RegressionThresholds(regression_percent=10.0))
        >>> result = detector.detect(series, run)
        >>> if result.has_regressions:
        ...     print(result.summary())
    """

    def __init__(self, thresholds: RegressionThresholds | None = None) -> None:
        """Initialize detector.

        Args:
            thresholds: Thresholds for regression detection. Defaults to RegressionThresholds().
        """
        self.thresholds = thresholds or RegressionThresholds()

    def detect(
        self,
        baseline: Series,
        run: BenchmarkRun,
        repo_url: str = "",
        group: str = "",
    ) -> ComparisonResult:
        """Compare every lane of ``run`` against ``baseline``.

        Args:
            baseline: Series as it was before ``run`` was appended.
            run: The new run.
            repo_url: Repository of the series, for reporting.
            group: Tool-group key of the series, for reporting.

        Returns:
            ComparisonResult with one verdict per lane of ``run``.
        """
        verdicts = [
            self.compare_lane(lane, bench, run.direction_of(bench), self._find_baseline(baseline, lane))
            for lane, bench in run.lanes()
        ]
        return ComparisonResult(
            repo_url=repo_url,
            group=group,
            commit_id=run.commit.id,
            verdicts=verdicts,
        )

    def _find_baseline(self, baseline: Series, lane: LaneKey) -> tuple[BenchmarkRun, BenchResult] | None:
        """Find the most recent prior run carrying a lane."""
        for prior in reversed(baseline):
            bench = prior.lane(lane)
            if bench is not None:
                return prior, bench
        return None

    def compare_lane(
        self,
        lane: LaneKey,
        bench: BenchResult,
        direction: Direction,
        prior: tuple[BenchmarkRun, BenchResult] | None,
    ) -> LaneVerdict:
        """Compare one lane against its baseline.

        Args:
            lane: Lane identity.
            bench: New result for the lane.
            direction: Resolved improvement direction.
            prior: Baseline run and result, or None for a new lane.

        Returns:
            LaneVerdict for the lane.
        """
        if prior is None:
            return LaneVerdict(
                lane=lane,
                verdict=Verdict.NEW_LANE,
                direction=direction,
                unit=bench.unit,
                current_value=bench.value,
            )

        prior_run, prior_bench = prior
        common = {
            "lane": lane,
            "direction": direction,
            "unit": bench.unit,
            "current_value": bench.value,
            "baseline_value": prior_bench.value,
            "baseline_unit": prior_bench.unit,
            "baseline_commit": prior_run.commit.id,
        }

        try:
            _check_unit(lane, prior_bench, bench)
            change = improvement_percent(prior_bench.value, bench.value, direction)
        except DataError:
            return LaneVerdict(verdict=Verdict.UNIT_CHANGED, **common)
        except BaselineZeroError:
            return LaneVerdict(verdict=Verdict.BASELINE_ZERO, **common)

        threshold = self.thresholds.regression_threshold(lane.name)
        critical_threshold = threshold * self.thresholds.critical_multiplier

        if change < -threshold:
            return LaneVerdict(
                verdict=Verdict.REGRESSION_DETECTED,
                improvement_percent=change,
                threshold_percent=threshold,
                severity="critical" if change < -critical_threshold else "warning",
                **common,
            )

        verdict = Verdict.IMPROVED if change > self.thresholds.improvement_percent else Verdict.STABLE
        return LaneVerdict(
            verdict=verdict,
            improvement_percent=change,
            threshold_percent=threshold,
            **common,
        )


def _check_unit(lane: LaneKey, prior: BenchResult, current: BenchResult) -> None:
    """Raise DataError if a lane changed unit since its baseline."""
    if prior.unit != current.unit:
        msg = f"Unit changed for {lane.label!r}: {prior.unit!r} -> {current.unit!r}"
        raise DataError(msg)
