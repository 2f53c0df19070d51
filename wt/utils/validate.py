"""
Pydantic schemas to validate recorded input and shape API output.
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field

from wt.analysis.types import (
    Accepted,
    FilteredPoint,
    FilterOutcome,
    RawFix,
    RejectedImplausibleSpeed,
    RejectedLowAccuracy,
    SessionSnapshot,
    SessionValidation,
    outcome_name,
)


class FixRecord(BaseModel):
    """
    One raw GPS fix, from a recording row or a POST body.
    """
    kind: Literal["fix"] = "fix"
    ts: int = Field(ge=0)
    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)
    accuracy: float = Field(ge=0.0)
    speed: Optional[float] = None
    altitude: Optional[float] = None

    def to_raw_fix(self) -> RawFix:
        return RawFix(
            latitude=self.lat,
            longitude=self.lon,
            horizontal_accuracy_m=self.accuracy,
            timestamp_ms=self.ts,
            speed_mps=self.speed,
            altitude_m=self.altitude,
        )


class StepRecord(BaseModel):
    """
    One cumulative step-counter reading.
    """
    kind: Literal["steps"] = "steps"
    steps: int = Field(ge=0)
    ts: Optional[int] = Field(default=None, ge=0)
    acceleration: Optional[float] = Field(default=None, ge=0.0)


class PathPoint(BaseModel):
    """
    One smoothed path vertex.
    """
    ts: int
    lat: float
    lon: float
    velocity: float

    @classmethod
    def from_point(cls, p: FilteredPoint) -> "PathPoint":
        return cls(ts=p.timestamp_ms, lat=p.latitude, lon=p.longitude, velocity=p.smoothed_velocity_mps)


class OutcomeOut(BaseModel):
    """
    Result of feeding one fix.
    """
    outcome: str
    point: Optional[PathPoint] = None
    implied_speed: Optional[float] = None
    accuracy: Optional[float] = None

    @classmethod
    def from_outcome(cls, outcome: FilterOutcome) -> "OutcomeOut":
        name = outcome_name(outcome)
        match outcome:
            case Accepted(point=point):
                return cls(outcome=name, point=PathPoint.from_point(point))
            case RejectedImplausibleSpeed(implied_speed_mps=speed):
                return cls(outcome=name, implied_speed=speed)
            case RejectedLowAccuracy(accuracy_m=accuracy):
                return cls(outcome=name, accuracy=accuracy)
        return cls(outcome=name)


class ValidationOut(BaseModel):
    """
    Session plausibility verdict.
    """
    action: str
    flags: list[str]
    should_count_steps: bool

    @classmethod
    def from_validation(cls, v: SessionValidation) -> "ValidationOut":
        return cls(
            action=v.action.value,
            flags=[f.value for f in v.flags],
            should_count_steps=v.should_count_steps,
        )


class SessionOut(BaseModel):
    """
    Serializable session snapshot.
    """
    session_id: Optional[str] = None
    total_meters: float
    total_steps: int
    movement_state: str
    accepted: int
    rejected_low_accuracy: int
    rejected_implausible_speed: int
    last_outcome: Optional[str] = None
    validation: Optional[ValidationOut] = None
    path: list[PathPoint]

    @classmethod
    def from_snapshot(cls, snap: SessionSnapshot, session_id: Optional[str] = None) -> "SessionOut":
        return cls(
            session_id=session_id,
            total_meters=snap.total_meters,
            total_steps=snap.total_steps,
            movement_state=snap.movement_state.value,
            accepted=snap.accepted,
            rejected_low_accuracy=snap.rejected_low_accuracy,
            rejected_implausible_speed=snap.rejected_implausible_speed,
            last_outcome=outcome_name(snap.last_outcome) if snap.last_outcome is not None else None,
            validation=ValidationOut.from_validation(snap.validation) if snap.validation is not None else None,
            path=[PathPoint.from_point(p) for p in snap.simplified_path],
        )
