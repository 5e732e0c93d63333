"""Models for regression detection.

This module provides dataclasses for regression thresholds, per-lane
verdicts, and the comparison result of one run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from benchtrack.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from benchtrack.core.config import Settings
    from benchtrack.core.types import Direction, LaneKey


class Verdict(str, Enum):
    """Outcome of comparing one lane against its baseline."""

    IMPROVED = "improved"
    STABLE = "stable"
    REGRESSION_DETECTED = "regression_detected"
    BASELINE_ZERO = "baseline_zero"
    UNIT_CHANGED = "unit_changed"
    NEW_LANE = "new_lane"


@dataclass
class RegressionThresholds:
    """Thresholds for regression detection, in percent.

    A lane regresses when its normalized improvement falls below
    ``-regression_percent`` and counts as improved above
    ``improvement_percent``; anything in between is stable.

    Attributes:
        regression_percent: Allowed drop before a regression is flagged (default 20%).
        improvement_percent: Gain needed to report an improvement (default 10%).
        critical_multiplier: Multiplier for critical severity (default 2x).
        per_metric: Regression percent overrides keyed by metric name.

    Example:
        >>> thresholds = RegressionThresholds(regression_percent=10.0)
        >>> thresholds.regression_threshold("health - Avg Latency")
        10.0
    """

    regression_percent: float = 20.0
    improvement_percent: float = 10.0
    critical_multiplier: float = 2.0
    per_metric: dict[str, float] = field(default_factory=dict)

    def regression_threshold(self, metric: str) -> float:
        """Regression percent for a metric name."""
        return self.per_metric.get(metric, self.regression_percent)

    @classmethod
    def from_settings(cls, settings: Settings) -> RegressionThresholds:
        """Build thresholds from application settings."""
        return cls(
            regression_percent=settings.regression_percent,
            improvement_percent=settings.improvement_percent,
        )

    @classmethod
    def from_yaml(cls, path: Path | str) -> RegressionThresholds:
        """Load thresholds from a YAML file.

        The file may hold the keys at top level or under ``thresholds:``::

            thresholds:
              regression_percent: 15
              improvement_percent: 5
              per_metric:
                "health - P99 Latency": 40

        Args:
            path: Path to the YAML configuration file.

        Returns:
            RegressionThresholds loaded from the file.

        Raises:
            ConfigurationError: If the file is missing, unreadable, or invalid.
        """
        import yaml

        path = Path(path)
        if not path.exists():
            msg = f"Thresholds file not found: {path}"
            raise ConfigurationError(msg)

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Cannot read thresholds file {path}: {e}"
            raise ConfigurationError(msg) from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            msg = f"Invalid YAML in {path}: {e}"
            raise ConfigurationError(msg) from e

        if data is None:
            return cls()
        if not isinstance(data, dict):
            msg = f"Thresholds file {path} must contain a mapping"
            raise ConfigurationError(msg)

        section = data.get("thresholds", data)
        defaults = cls()
        try:
            thresholds = cls(
                regression_percent=float(section.get("regression_percent", defaults.regression_percent)),
                improvement_percent=float(section.get("improvement_percent", defaults.improvement_percent)),
                critical_multiplier=float(section.get("critical_multiplier", defaults.critical_multiplier)),
                per_metric={str(k): float(v) for k, v in (section.get("per_metric") or {}).items()},
            )
        except (AttributeError, TypeError, ValueError) as e:
            msg = f"Invalid thresholds in {path}: {e}"
            raise ConfigurationError(msg) from e

        if thresholds.regression_percent < 0 or thresholds.improvement_percent < 0:
            msg = f"Thresholds in {path} must be non-negative"
            raise ConfigurationError(msg)
        return thresholds


@dataclass(frozen=True)
class LaneVerdict:
    """Comparison outcome for one lane of a run.

    Attributes:
        lane: Lane identity (name + occurrence).
        verdict: Outcome kind.
        direction: Direction used for normalization.
        unit: Unit of the new value.
        current_value: Value in the new run.
        baseline_value: Baseline value, when a baseline lane exists.
        baseline_unit: Unit of the baseline lane.
        baseline_commit: Commit id of the baseline run.
        improvement_percent: Normalized change; positive means "got better".
        threshold_percent: Regression threshold applied to this lane.
        severity: "warning" or "critical" for regressions.

    Example:
        >>> verdict.message
        'health - Avg Latency regressed by 25.0% (threshold: 20.0%)'
    """

    lane: LaneKey
    verdict: Verdict
    direction: Direction
    unit: str
    current_value: float
    baseline_value: float | None = None
    baseline_unit: str | None = None
    baseline_commit: str | None = None
    improvement_percent: float | None = None
    threshold_percent: float | None = None
    severity: Literal["warning", "critical"] | None = None

    @property
    def message(self) -> str:
        """Human-readable description of the outcome."""
        label = self.lane.label
        if self.verdict is Verdict.REGRESSION_DETECTED:
            return (
                f"{label} regressed by {abs(self.improvement_percent or 0.0):.1f}% "
                f"(threshold: {self.threshold_percent:.1f}%)"
            )
        if self.verdict is Verdict.IMPROVED:
            return f"{label} improved by {self.improvement_percent:.1f}%"
        if self.verdict is Verdict.STABLE:
            return f"{label} stable ({self.improvement_percent:+.1f}%)"
        if self.verdict is Verdict.BASELINE_ZERO:
            return f"{label} not comparable: baseline value is zero"
        if self.verdict is Verdict.UNIT_CHANGED:
            return f"{label} not comparable: unit changed from {self.baseline_unit!r} to {self.unit!r}"
        return f"{label} has no baseline"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "name": self.lane.name,
            "occurrence": self.lane.occurrence,
            "verdict": self.verdict.value,
            "direction": self.direction.value,
            "unit": self.unit,
            "current_value": self.current_value,
            "baseline_value": self.baseline_value,
            "baseline_unit": self.baseline_unit,
            "baseline_commit": self.baseline_commit,
            "improvement_percent": self.improvement_percent,
            "threshold_percent": self.threshold_percent,
            "severity": self.severity,
        }


@dataclass
class ComparisonResult:
    """Result of comparing one run against its series.

    Attributes:
        repo_url: Repository of the series.
        group: Tool-group key of the series.
        commit_id: Commit of the compared run.
        verdicts: One verdict per lane, in run order.
        timestamp: When the comparison was performed.

    Example:
        >>> result = detector.detect(series, run)
        >>> if result.has_regressions:
        ...     for verdict in result.regressions:
        ...         print(verdict.message)
    """

    repo_url: str
    group: str
    commit_id: str
    verdicts: list[LaneVerdict]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def regressions(self) -> list[LaneVerdict]:
        """Lanes flagged as regressions."""
        return [v for v in self.verdicts if v.verdict is Verdict.REGRESSION_DETECTED]

    @property
    def has_regressions(self) -> bool:
        """Check if any regressions were detected."""
        return len(self.regressions) > 0

    @property
    def has_critical(self) -> bool:
        """Check if any critical regressions were detected."""
        return any(v.severity == "critical" for v in self.regressions)

    def counts(self) -> dict[str, int]:
        """Number of lanes per verdict kind."""
        result = {verdict.value: 0 for verdict in Verdict}
        for v in self.verdicts:
            result[v.verdict.value] += 1
        return result

    def summary(self) -> str:
        """Generate a human-readable summary.

        Returns:
            Multi-line summary string.
        """
        if not self.has_regressions:
            return f"No regressions detected across {len(self.verdicts)} lanes."

        critical = sum(1 for v in self.regressions if v.severity == "critical")
        lines = [
            f"Regression Detection Summary ({self.timestamp.strftime('%Y-%m-%d %H:%M:%S')})",
            f"  Critical: {critical}, Warnings: {len(self.regressions) - critical}",
            "",
            "Alerts:",
        ]
        for v in self.regressions:
            marker = "[CRITICAL]" if v.severity == "critical" else "[WARNING]"
            lines.append(f"  {marker} {v.message}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "repo_url": self.repo_url,
            "group": self.group,
            "commit_id": self.commit_id,
            "timestamp": self.timestamp.isoformat(),
            "has_regressions": self.has_regressions,
            "counts": self.counts(),
            "verdicts": [v.to_dict() for v in self.verdicts],
        }
