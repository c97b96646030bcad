"""
Typed scoring rules.

A stored rules payload is free-form JSON. It is checked once, when an owner
writes it (parse_rules), and turned into one of two immutable models:
ThresholdRules or RankRules. Evaluators only ever see these models.
"""
import json
from typing import ClassVar, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, ValidationError, ValidationInfo, model_validator

THRESHOLD = "THRESHOLD"
RANK = "RANK"
MODES = (THRESHOLD, RANK)

DAY_HOURS = 24.0

# validation context flag: enforce the [0, 24) partition (write time only)
CHECK_COVERAGE = "check_coverage"


class RuleValidationError(ValueError):
    """Raised when a rules payload is rejected at write time."""


class _Rules(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, allow_inf_nan=False)


class Bucket(_Rules):
    points: StrictInt
    min: Optional[StrictFloat] = Field(default=None, allow_inf_nan=False)
    max: Optional[StrictFloat] = Field(default=None, allow_inf_nan=False)

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min is not None and self.max is not None and self.min >= self.max:
            raise ValueError(f"Bucket is empty: min {self.min} >= max {self.max}")
        return self

    def matches(self, hours: float) -> bool:
        # [min, max)
        if self.min is not None and hours < self.min:
            return False
        if self.max is not None and hours >= self.max:
            return False
        return True


class StreakRules(_Rules):
    min_minutes: StrictInt = Field(default=420, ge=0, alias="minMinutes")
    days: StrictInt = Field(default=7, ge=1)
    completed_bonus: StrictInt = Field(default=3, alias="completedBonus")
    continued_bonus: StrictInt = Field(default=1, alias="continuedBonus")


def check_coverage(buckets: Tuple[Bucket, ...]):
    """
    Buckets must partition [0, 24) hours: no gap and no overlap.
    Checked on a copy sorted by lower bound; author order is kept for scoring.
    """
    ordered = sorted(buckets, key=lambda b: float("-inf") if b.min is None else b.min)

    first, last = ordered[0], ordered[-1]
    if first.min is not None and first.min > 0:
        raise ValueError(f"Buckets leave a gap: nothing covers [0, {first.min})")

    for prev, nxt in zip(ordered, ordered[1:]):
        if prev.max is None or nxt.min is None or nxt.min < prev.max:
            raise ValueError(f"Buckets overlap around {nxt.min if nxt.min is not None else prev.max}h")
        if nxt.min > prev.max:
            raise ValueError(f"Buckets leave a gap: nothing covers [{prev.max}, {nxt.min})")

    if last.max is not None and last.max < DAY_HOURS:
        raise ValueError(f"Buckets leave a gap: nothing covers [{last.max}, {DAY_HOURS})")


class ThresholdRules(_Rules):
    buckets: Tuple[Bucket, ...] = Field(min_length=1)
    non_submit_points: StrictInt = Field(default=-1, alias="nonSubmitPoints")
    thumbs_up_bonus: StrictInt = Field(default=0, alias="thumbsUpBonus")
    streak: StreakRules = Field(default_factory=StreakRules)

    mode: ClassVar[str] = THRESHOLD

    @model_validator(mode="after")
    def check_partition(self, info: ValidationInfo):
        if info.context and info.context.get(CHECK_COVERAGE):
            check_coverage(self.buckets)
        return self

    def find_bucket(self, hours: float) -> Optional[Bucket]:
        """First bucket in author order that contains `hours`."""
        for bucket in self.buckets:
            if bucket.matches(hours):
                return bucket
        return None


class RankRules(_Rules):
    """Payload reserved for future tie-break or weighting options."""

    mode: ClassVar[str] = RANK


Rules = Union[ThresholdRules, RankRules]

RULE_MODELS = {THRESHOLD: ThresholdRules, RANK: RankRules}


def _describe(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def load_payload(payload):
    """Accepts a dict or its JSON text."""
    if isinstance(payload, (str, bytes)):
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise RuleValidationError(f"Invalid JSON config: {e}") from e
    return payload


def _validate(mode: str, payload, check: bool) -> Rules:
    if mode not in RULE_MODELS:
        raise RuleValidationError(f"Unknown scoring mode {mode!r}")
    try:
        return RULE_MODELS[mode].model_validate(load_payload(payload), context={CHECK_COVERAGE: check})
    except ValidationError as e:
        raise RuleValidationError(_describe(e)) from e


def parse_rules(mode: str, payload) -> Rules:
    """Full write-time validation. Raises RuleValidationError."""
    return _validate(mode, payload, check=True)


def rules_from_row(mode: str, rules_json: str) -> Rules:
    """
    Rebuilds rules from a stored row. Coverage is not re-checked: rows were
    validated when written, and a historic row must still be scorable.
    """
    return _validate(mode, rules_json, check=False)


def default_threshold_payload() -> dict:
    return {
        "buckets": [
            {"max": 4.5, "points": -1},
            {"min": 4.5, "max": 5.5, "points": 0},
            {"min": 5.5, "max": 6.5, "points": 1},
            {"min": 6.5, "max": 7.5, "points": 2},
            {"min": 7.5, "points": 3},
        ],
        "nonSubmitPoints": -1,
        "thumbsUpBonus": 1,
    }
