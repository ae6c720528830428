"""Dataclasses shared by the recorder, the matcher and the service layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True, slots=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class LocationSample:
    """A single accepted fix from the platform location source."""

    latitude: float
    longitude: float
    elevation: float
    accuracy: float
    speed: Optional[float]
    timestamp_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "elevation": self.elevation,
            "accuracy": self.accuracy,
            "speed": self.speed,
            "timestamp_ms": self.timestamp_ms,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LocationSample":
        speed = data.get("speed")
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            elevation=float(data.get("elevation") or 0.0),
            accuracy=float(data.get("accuracy") or 0.0),
            speed=None if speed is None else float(speed),
            timestamp_ms=int(data["timestamp_ms"]),
        )


@dataclass(frozen=True, slots=True)
class TrackingStats:
    """Statistics derived from a sample sequence; speeds are km/h."""

    duration_ms: int = 0
    distance_m: float = 0.0
    vertical_drop_m: float = 0.0
    max_speed_kmh: float = 0.0
    current_speed_kmh: float = 0.0
    sample_count: int = 0
    max_elevation_m: float = 0.0
    min_elevation_m: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration_ms": self.duration_ms,
            "distance_m": self.distance_m,
            "vertical_drop_m": self.vertical_drop_m,
            "max_speed_kmh": self.max_speed_kmh,
            "current_speed_kmh": self.current_speed_kmh,
            "sample_count": self.sample_count,
            "max_elevation_m": self.max_elevation_m,
            "min_elevation_m": self.min_elevation_m,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrackingStats":
        return cls(
            duration_ms=int(data.get("duration_ms", 0)),
            distance_m=float(data.get("distance_m", 0.0)),
            vertical_drop_m=float(data.get("vertical_drop_m", 0.0)),
            max_speed_kmh=float(data.get("max_speed_kmh", 0.0)),
            current_speed_kmh=float(data.get("current_speed_kmh", 0.0)),
            sample_count=int(data.get("sample_count", 0)),
            max_elevation_m=float(data.get("max_elevation_m", 0.0)),
            min_elevation_m=float(data.get("min_elevation_m", 0.0)),
        )


@dataclass(slots=True)
class TrackingSession:
    """Snapshot of a recording session (live, checkpointed or finished)."""

    session_id: str
    started_at_ms: int
    samples: List[LocationSample] = field(default_factory=list)
    stats: TrackingStats = field(default_factory=TrackingStats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "started_at_ms": self.started_at_ms,
            "samples": [sample.to_dict() for sample in self.samples],
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrackingSession":
        return cls(
            session_id=str(data["session_id"]),
            started_at_ms=int(data["started_at_ms"]),
            samples=[LocationSample.from_dict(item) for item in data.get("samples", [])],
            stats=TrackingStats.from_dict(data.get("stats") or {}),
        )


@dataclass(frozen=True, slots=True)
class FinishedTrackPayload:
    """Immutable submission unit built once when recording stops."""

    samples: tuple[LocationSample, ...]
    started_at: str
    ended_at: str
    duration_seconds: int
    distance_meters: int
    vertical_drop_meters: int
    max_speed_kmh: float
    avg_speed_kmh: float
    start_latitude: float
    start_longitude: float
    start_elevation: float
    end_latitude: float
    end_longitude: float
    end_elevation: float

    @property
    def start(self) -> Coordinate:
        return Coordinate(self.start_latitude, self.start_longitude)

    @property
    def end(self) -> Coordinate:
        return Coordinate(self.end_latitude, self.end_longitude)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "samples": [sample.to_dict() for sample in self.samples],
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "duration_seconds": self.duration_seconds,
            "distance_meters": self.distance_meters,
            "vertical_drop_meters": self.vertical_drop_meters,
            "max_speed_kmh": self.max_speed_kmh,
            "avg_speed_kmh": self.avg_speed_kmh,
            "start_latitude": self.start_latitude,
            "start_longitude": self.start_longitude,
            "start_elevation": self.start_elevation,
            "end_latitude": self.end_latitude,
            "end_longitude": self.end_longitude,
            "end_elevation": self.end_elevation,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FinishedTrackPayload":
        """Build a payload from its wire form. Raises KeyError/ValueError/TypeError."""

        return cls(
            samples=tuple(LocationSample.from_dict(item) for item in data["samples"]),
            started_at=str(data["started_at"]),
            ended_at=str(data["ended_at"]),
            duration_seconds=int(data["duration_seconds"]),
            distance_meters=int(data["distance_meters"]),
            vertical_drop_meters=int(data["vertical_drop_meters"]),
            max_speed_kmh=float(data["max_speed_kmh"]),
            avg_speed_kmh=float(data["avg_speed_kmh"]),
            start_latitude=float(data["start_latitude"]),
            start_longitude=float(data["start_longitude"]),
            start_elevation=float(data.get("start_elevation") or 0.0),
            end_latitude=float(data["end_latitude"]),
            end_longitude=float(data["end_longitude"]),
            end_elevation=float(data.get("end_elevation") or 0.0),
        )


@dataclass(frozen=True, slots=True)
class QueuedSubmission:
    queue_id: str
    queued_at_ms: int
    payload: FinishedTrackPayload

    def to_dict(self) -> Dict[str, Any]:
        return {
            "queue_id": self.queue_id,
            "queued_at_ms": self.queued_at_ms,
            "payload": self.payload.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QueuedSubmission":
        return cls(
            queue_id=str(data["queue_id"]),
            queued_at_ms=int(data["queued_at_ms"]),
            payload=FinishedTrackPayload.from_dict(data["payload"]),
        )


@dataclass(slots=True)
class Line:
    """A catalogued descent route used as a matching target."""

    id: str
    name: str
    country: str
    start_latitude: float
    start_longitude: float
    start_elevation: float
    end_latitude: float
    end_longitude: float
    end_elevation: float
    vertical_drop: float
    distance: float
    status: str = "approved"
    run_count: int = 0
    updated_at: Optional[str] = None
    resort: Optional[str] = None

    @property
    def start(self) -> Coordinate:
        return Coordinate(self.start_latitude, self.start_longitude)

    @property
    def end(self) -> Coordinate:
        return Coordinate(self.end_latitude, self.end_longitude)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "country": self.country,
            "resort": self.resort,
            "start_latitude": self.start_latitude,
            "start_longitude": self.start_longitude,
            "start_elevation": self.start_elevation,
            "end_latitude": self.end_latitude,
            "end_longitude": self.end_longitude,
            "end_elevation": self.end_elevation,
            "vertical_drop": self.vertical_drop,
            "distance": self.distance,
            "status": self.status,
            "run_count": self.run_count,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Line":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            country=str(data.get("country", "")),
            resort=data.get("resort"),
            start_latitude=float(data["start_latitude"]),
            start_longitude=float(data["start_longitude"]),
            start_elevation=float(data.get("start_elevation") or 0.0),
            end_latitude=float(data["end_latitude"]),
            end_longitude=float(data["end_longitude"]),
            end_elevation=float(data.get("end_elevation") or 0.0),
            vertical_drop=float(data["vertical_drop"]),
            distance=float(data.get("distance") or 0.0),
            status=str(data.get("status", "approved")),
            run_count=int(data.get("run_count") or 0),
            updated_at=data.get("updated_at"),
        )


@dataclass(frozen=True, slots=True)
class MatchResult:
    line_id: str
    line_name: str
    confidence: float
    average_deviation_m: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line_id": self.line_id,
            "line_name": self.line_name,
            "confidence": self.confidence,
            "average_deviation_m": self.average_deviation_m,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MatchResult":
        return cls(
            line_id=str(data["line_id"]),
            line_name=str(data["line_name"]),
            confidence=float(data["confidence"]),
            average_deviation_m=int(data["average_deviation_m"]),
        )


@dataclass(slots=True)
class TrackRecord:
    """A track as stored by the remote service."""

    id: str
    user_id: str
    payload: FinishedTrackPayload
    recorded_at: str
    line_id: Optional[str] = None
    match_confidence: Optional[float] = None
    average_deviation_m: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.payload.to_dict()
        data.pop("samples")
        data.update(
            {
                "id": self.id,
                "user_id": self.user_id,
                "recorded_at": self.recorded_at,
                "sample_count": len(self.payload.samples),
                "line_id": self.line_id,
                "match_confidence": self.match_confidence,
                "average_deviation_m": self.average_deviation_m,
            }
        )
        return data


@dataclass(slots=True)
class RecordedTrack:
    """Outcome of the remote ``submitTrack`` operation."""

    track: TrackRecord
    match: Optional[MatchResult] = None


@dataclass(slots=True)
class SubmitResult:
    """Outcome of ``TrackRecorder.submit``: accepted live or queued offline."""

    track: Optional[Dict[str, Any]] = None
    match: Optional[MatchResult] = None
    queued: bool = False
    queue_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SyncResult:
    synced: int = 0
    failed: int = 0
