"""Core type definitions for benchtrack.

This module defines the fundamental data structures used throughout
the library: commits, benchmark results, runs, and lanes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from benchtrack.core.exceptions import UnknownToolError

if TYPE_CHECKING:
    from collections.abc import Iterator


class Direction(str, Enum):
    """Which way a metric improves."""

    BIGGER_IS_BETTER = "biggerIsBetter"
    SMALLER_IS_BETTER = "smallerIsBetter"

    @classmethod
    def from_extra(cls, extra: str | None) -> Direction | None:
        """Resolve an explicit direction from a bench ``extra`` string.

        Args:
            extra: Free-form extra string attached to a result.

        Returns:
            The direction if ``extra`` names one, None otherwise.

        Example:
            >>> Direction.from_extra("biggerIsBetter")
            <Direction.BIGGER_IS_BETTER: 'biggerIsBetter'>
            >>> Direction.from_extra("p95 over 3 runs") is None
            True
        """
        if extra is None:
            return None
        try:
            return cls(extra.strip())
        except ValueError:
            return None


class Tool(str, Enum):
    """Aggregation policy fixing the default direction of every metric in a run."""

    CUSTOM_BIGGER_IS_BETTER = "customBiggerIsBetter"
    CUSTOM_SMALLER_IS_BETTER = "customSmallerIsBetter"

    @property
    def direction(self) -> Direction:
        """Default improvement direction for this tool."""
        if self is Tool.CUSTOM_BIGGER_IS_BETTER:
            return Direction.BIGGER_IS_BETTER
        return Direction.SMALLER_IS_BETTER

    @classmethod
    def parse(cls, name: str | Tool) -> Tool:
        """Resolve a tool name.

        Args:
            name: Tool name as found on the wire or the command line.

        Returns:
            The matching Tool.

        Raises:
            UnknownToolError: If the name is not a known aggregation policy.
        """
        if isinstance(name, Tool):
            return name
        try:
            return cls(name)
        except ValueError:
            raise UnknownToolError(str(name)) from None


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z``.

    Naive timestamps are taken to be UTC.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def from_epoch_ms(value: int | float) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return round(value.timestamp() * 1000)


class GitUser(BaseModel):
    """Author or committer of a commit.

    Attributes:
        email: Optional e-mail address.
        name: Display name.
        username: Optional VCS hosting username.
    """

    model_config = {"frozen": True, "extra": "ignore"}

    email: str | None = Field(default=None, description="E-mail address")
    name: str = Field(..., description="Display name")
    username: str | None = Field(default=None, description="Hosting username")


class CommitInfo(BaseModel):
    """The commit a benchmark run was measured on.

    Attributes:
        author: Commit author.
        committer: Commit committer.
        distinct: Optional push-event flag, persisted when present.
        id: VCS revision string.
        message: Commit message.
        timestamp: ISO-8601 commit timestamp, kept as written.
        tree_id: Optional tree hash.
        url: Link to the commit.

    Example:
        >>> commit = CommitInfo(
        ...     author=GitUser(name="paritytech", username="paritytech"),
        ...     committer=GitUser(name="paritytech", username="paritytech"),
        ...     id="46805fe35e0879e7875c319283eeb7290130d338",
        ...     message="feat: Benchmarking",
        ...     timestamp="2025-10-23T15:16:21Z",
        ...     url="https://github.com/paritytech/polkadot-rest-api/commit/46805fe",
        ... )
        >>> commit.committed_at.year
        2025
    """

    model_config = {"frozen": True, "extra": "ignore"}

    author: GitUser = Field(..., description="Commit author")
    committer: GitUser = Field(..., description="Commit committer")
    distinct: bool | None = Field(default=None, description="Push-event distinct flag")
    id: str = Field(..., min_length=1, description="VCS revision")
    message: str = Field(default="", description="Commit message")
    timestamp: str = Field(..., description="ISO-8601 commit timestamp")
    tree_id: str | None = Field(default=None, description="Tree hash")
    url: str = Field(default="", description="Link to the commit")

    @field_validator("timestamp")
    @classmethod
    def _check_timestamp(cls, value: str) -> str:
        parse_timestamp(value)
        return value

    @property
    def committed_at(self) -> datetime:
        """Commit timestamp as an aware datetime."""
        return parse_timestamp(self.timestamp)

    @property
    def short_id(self) -> str:
        """First seven characters of the revision."""
        return self.id[:7]


class BenchResult(BaseModel):
    """One named metric value within a run.

    ``direction`` is an explicit per-metric override. It is resolved once,
    when the result is built, from ``extra`` if that names a direction. It
    is never written to the wire itself: an explicit direction with no
    ``extra`` is written as ``extra``, and one that ``extra`` does not name
    is rejected.

    Attributes:
        name: Metric label, not unique within a run.
        value: Finite metric value.
        unit: Metric unit.
        extra: Optional free-form string, persisted verbatim.
        direction: Explicit improvement direction, if any.

    Example:
        >>> bench = BenchResult(
        ...     name="health - Throughput",
        ...     value=44130.09,
        ...     unit="req/sec",
        ...     extra="biggerIsBetter",
        ... )
        >>> bench.direction
        <Direction.BIGGER_IS_BETTER: 'biggerIsBetter'>
    """

    model_config = {"frozen": True}

    name: str = Field(..., min_length=1, description="Metric label")
    value: float = Field(..., allow_inf_nan=False, description="Metric value")
    unit: str = Field(..., min_length=1, description="Metric unit")
    extra: str | None = Field(default=None, description="Free-form extra string")
    direction: Direction | None = Field(
        default=None,
        exclude=True,
        description="Explicit improvement direction",
    )

    @model_validator(mode="before")
    @classmethod
    def _resolve_direction(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        implied = Direction.from_extra(data.get("extra"))
        direction = data.get("direction")
        if direction is None:
            if implied is not None:
                data = {**data, "direction": implied}
            return data
        direction = Direction(direction)
        if data.get("extra") is None:
            return {**data, "direction": direction, "extra": direction.value}
        if implied is not direction:
            msg = f"direction {direction.value!r} does not match extra {data['extra']!r}"
            raise ValueError(msg)
        return {**data, "direction": direction}


class LaneKey(NamedTuple):
    """Identity of a lane: metric name plus occurrence among same-named results."""

    name: str
    occurrence: int = 0

    @property
    def label(self) -> str:
        """Display label; later occurrences get a 1-based suffix."""
        if self.occurrence == 0:
            return self.name
        return f"{self.name} [{self.occurrence + 1}]"


class BenchmarkRun(BaseModel):
    """All results of one CI run for one commit.

    Attributes:
        commit: Commit the run was measured on.
        date: Ingestion instant (may differ from the commit timestamp).
        tool: Aggregation policy fixing the default direction.
        benches: Ordered results; order distinguishes same-named lanes.
    """

    model_config = {"frozen": True}

    commit: CommitInfo = Field(..., description="Commit the run was measured on")
    date: datetime = Field(..., description="Ingestion instant")
    tool: Tool = Field(..., description="Aggregation policy")
    benches: tuple[BenchResult, ...] = Field(default=(), description="Ordered results")

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return from_epoch_ms(value)
        return value

    @field_validator("date")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_serializer("date")
    def _serialize_date(self, value: datetime) -> int:
        return to_epoch_ms(value)

    @property
    def date_ms(self) -> int:
        """Ingestion instant as epoch milliseconds."""
        return to_epoch_ms(self.date)

    def lanes(self) -> Iterator[tuple[LaneKey, BenchResult]]:
        """Iterate results paired with their lane key, in run order."""
        seen: dict[str, int] = {}
        for bench in self.benches:
            occurrence = seen.get(bench.name, 0)
            seen[bench.name] = occurrence + 1
            yield LaneKey(bench.name, occurrence), bench

    def lane(self, key: LaneKey) -> BenchResult | None:
        """Return the result for a lane, or None if this run lacks it."""
        for lane_key, bench in self.lanes():
            if lane_key == key:
                return bench
        return None

    def direction_of(self, bench: BenchResult) -> Direction:
        """Resolve the direction of a result: its override, else the tool default."""
        return bench.direction or self.tool.direction

    def to_dict(self) -> dict[str, Any]:
        """Convert the run to its wire form."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchmarkRun:
        """Create a run from its wire form."""
        return cls.model_validate(data)


Series = tuple[BenchmarkRun, ...]
"""Ordered, append-only runs of one (repository, group) key."""
