"""Measurement session: drawn land, roof and fence shapes and their totals"""

from typing import Dict, Any, List, Optional, Sequence, Union
from dataclasses import dataclass, field
from enum import Enum
import uuid
import structlog

from propviz.utils.exceptions import ValidationError, NotFoundError
from propviz.utils.geometry import (
    compute_area,
    compute_length,
    polygon_is_simple,
    polyline_is_simple,
    sqm_to_sqft,
    meters_to_feet,
)

logger = structlog.get_logger(__name__)

class ShapeKind(Enum):
    """Kinds of shapes a user can draw"""
    LAND = "land"
    ROOF = "roof"
    FENCE = "fence"

    @property
    def is_polygon(self) -> bool:
        return self is not ShapeKind.FENCE

# Slope multipliers for converting a roof footprint to actual roof area
ROOF_PITCH_FACTORS = {
    "flat": 1.000,
    "1/12": 1.003,
    "2/12": 1.014,
    "3/12": 1.031,
    "4/12": 1.054,
    "5/12": 1.083,
    "6/12": 1.118,
    "7/12": 1.158,
    "8/12": 1.202,
    "9/12": 1.250,
    "10/12": 1.302,
    "11/12": 1.357,
    "12/12": 1.414,
    "13/12": 1.474,
    "14/12": 1.537,
    "15/12": 1.601,
    "16/12": 1.667,
}

def resolve_pitch(pitch: Union[str, float, int, None]) -> float:
    """Turn a named pitch ("6/12") or a numeric multiplier into a multiplier"""
    if pitch is None or pitch == "":
        return 1.0

    if isinstance(pitch, str) and pitch.strip().lower() in ROOF_PITCH_FACTORS:
        return ROOF_PITCH_FACTORS[pitch.strip().lower()]

    try:
        multiplier = float(pitch)
    except (TypeError, ValueError):
        raise ValidationError(
            f"Invalid roof pitch: {pitch}. Use one of {', '.join(ROOF_PITCH_FACTORS)} or a multiplier"
        )

    if multiplier < 1.0:
        raise ValidationError(f"Roof pitch multiplier must be at least 1.0, got {multiplier}")

    return multiplier

@dataclass(frozen=True)
class LatLng:
    """A map coordinate"""
    lat: float
    lng: float

    def __post_init__(self):
        if not -90.0 <= self.lat <= 90.0:
            raise ValidationError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValidationError(f"Longitude out of range: {self.lng}")

    @classmethod
    def parse(cls, value: Any) -> "LatLng":
        """Accept {"lat": .., "lng": ..} or a [lat, lng] pair"""
        try:
            if isinstance(value, dict):
                return cls(float(value["lat"]), float(value["lng"]))
            lat, lng = value
            return cls(float(lat), float(lng))
        except (KeyError, TypeError, ValueError):
            raise ValidationError(f"Invalid point: {value!r}")

    def as_tuple(self):
        return (self.lat, self.lng)

@dataclass(eq=False)
class Shape:
    """A drawn polygon (land, roof) or polyline (fence)"""
    kind: ShapeKind
    points: List[LatLng]
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __post_init__(self):
        self.points = list(self.points)
        if len(self.points) < self.min_points:
            raise ValidationError(
                f"A {self.kind.value} shape needs at least {self.min_points} points, got {len(self.points)}"
            )

    @property
    def min_points(self) -> int:
        return 3 if self.kind.is_polygon else 2

    @property
    def path(self):
        return [p.as_tuple() for p in self.points]

    def insert_vertex(self, index: int, point: LatLng) -> None:
        if not 0 <= index <= len(self.points):
            raise ValidationError(f"Vertex index out of range: {index}")
        self.points.insert(index, point)

    def move_vertex(self, index: int, point: LatLng) -> None:
        self._check_index(index)
        self.points[index] = point

    def remove_vertex(self, index: int) -> None:
        self._check_index(index)
        if len(self.points) - 1 < self.min_points:
            raise ValidationError(
                f"Cannot remove vertex: a {self.kind.value} shape needs at least {self.min_points} points"
            )
        del self.points[index]

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.points):
            raise ValidationError(f"Vertex index out of range: {index}")

    def area_m2(self) -> float:
        return compute_area(self.path) if self.kind.is_polygon else 0.0

    def length_m(self) -> float:
        return 0.0 if self.kind.is_polygon else compute_length(self.path)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "kind": self.kind.value,
            "vertex_count": len(self.points),
            "points": [{"lat": p.lat, "lng": p.lng} for p in self.points],
        }

        if self.kind.is_polygon:
            area = self.area_m2()
            data["area_m2"] = round(area, 2)
            data["area_sqft"] = round(sqm_to_sqft(area), 2)
            data["is_simple"] = polygon_is_simple(self.path)
        else:
            length = self.length_m()
            data["length_m"] = round(length, 2)
            data["length_ft"] = round(meters_to_feet(length), 2)
            data["is_simple"] = polyline_is_simple(self.path)

        return data

@dataclass
class MeasurementSummary:
    """Totals across all shapes of a session"""
    land_area_m2: float
    land_count: int
    roof_area_m2: float
    roof_count: int
    roof_pitch_multiplier: float
    fence_length_m: float
    fence_count: int

    @property
    def land_area_sqft(self) -> float:
        return sqm_to_sqft(self.land_area_m2)

    @property
    def roof_area_sqft(self) -> float:
        return sqm_to_sqft(self.roof_area_m2)

    @property
    def adjusted_roof_area_m2(self) -> float:
        return self.roof_area_m2 * self.roof_pitch_multiplier

    @property
    def adjusted_roof_area_sqft(self) -> float:
        return self.roof_area_sqft * self.roof_pitch_multiplier

    @property
    def fence_length_ft(self) -> float:
        return meters_to_feet(self.fence_length_m)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "land": {
                "area_m2": round(self.land_area_m2, 2),
                "area_sqft": round(self.land_area_sqft, 2),
                "count": self.land_count,
            },
            "roof": {
                "area_m2": round(self.roof_area_m2, 2),
                "area_sqft": round(self.roof_area_sqft, 2),
                "count": self.roof_count,
                "pitch_multiplier": self.roof_pitch_multiplier,
                "adjusted_area_m2": round(self.adjusted_roof_area_m2, 2),
                "adjusted_area_sqft": round(self.adjusted_roof_area_sqft, 2),
            },
            "fence": {
                "length_m": round(self.fence_length_m, 2),
                "length_ft": round(self.fence_length_ft, 2),
                "count": self.fence_count,
            },
        }

class MeasurementSession:
    """
    Holds the shapes drawn over the map, one collection per kind

    Mirrors the drawing workflow: pick a mode, complete a shape, select
    shapes by clicking them, delete the selection or clear everything.
    At most one shape is selected at a time.
    """

    def __init__(self, roof_pitch: Union[str, float, None] = None):
        self.shapes: Dict[ShapeKind, List[Shape]] = {kind: [] for kind in ShapeKind}
        self.drawing_mode: Optional[ShapeKind] = None
        self.selected: Optional[Shape] = None
        self.roof_pitch_multiplier = resolve_pitch(roof_pitch)

    @property
    def land(self) -> List[Shape]:
        return self.shapes[ShapeKind.LAND]

    @property
    def roofs(self) -> List[Shape]:
        return self.shapes[ShapeKind.ROOF]

    @property
    def fences(self) -> List[Shape]:
        return self.shapes[ShapeKind.FENCE]

    def all_shapes(self) -> List[Shape]:
        return [shape for kind in ShapeKind for shape in self.shapes[kind]]

    def set_roof_pitch(self, pitch: Union[str, float, None]) -> None:
        self.roof_pitch_multiplier = resolve_pitch(pitch)

    def set_drawing_mode(self, kind: Union[ShapeKind, str]) -> None:
        self.drawing_mode = _parse_kind(kind)
        self.deselect()

    def complete_shape(self, points: Sequence[Any]) -> Shape:
        """Finish drawing a shape in the current mode; drawing stops afterwards"""
        if self.drawing_mode is None:
            raise ValidationError("No drawing mode selected")

        shape = self.add_shape(self.drawing_mode, points)
        self.drawing_mode = None
        return shape

    def add_shape(self, kind: Union[ShapeKind, str], points: Sequence[Any]) -> Shape:
        kind = _parse_kind(kind)
        shape = Shape(kind=kind, points=[LatLng.parse(p) for p in points])
        self.shapes[kind].append(shape)
        logger.debug("Shape added", kind=kind.value, vertices=len(shape.points))
        return shape

    def find(self, shape_id: str) -> Shape:
        for shape in self.all_shapes():
            if shape.id == shape_id:
                return shape
        raise NotFoundError(f"Shape not found: {shape_id}")

    def select(self, shape: Union[Shape, str]) -> Shape:
        if isinstance(shape, str):
            shape = self.find(shape)
        elif not any(s is shape for s in self.shapes[shape.kind]):
            raise NotFoundError(f"Shape not found: {shape.id}")

        self.deselect()
        self.selected = shape
        return shape

    def deselect(self) -> None:
        self.selected = None

    def cancel(self) -> None:
        """Stop drawing and drop the selection"""
        self.drawing_mode = None
        self.deselect()

    def delete_selected(self) -> bool:
        if self.selected is None:
            return False

        collection = self.shapes[self.selected.kind]
        for i, shape in enumerate(collection):
            if shape is self.selected:
                del collection[i]
                break

        self.selected = None
        return True

    def clear_all(self) -> None:
        for kind in ShapeKind:
            self.shapes[kind] = []
        self.selected = None

    def summary(self) -> MeasurementSummary:
        return MeasurementSummary(
            land_area_m2=sum(shape.area_m2() for shape in self.land),
            land_count=len(self.land),
            roof_area_m2=sum(shape.area_m2() for shape in self.roofs),
            roof_count=len(self.roofs),
            roof_pitch_multiplier=self.roof_pitch_multiplier,
            fence_length_m=sum(shape.length_m() for shape in self.fences),
            fence_count=len(self.fences),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary().to_dict(),
            "shapes": [shape.to_dict() for shape in self.all_shapes()],
        }

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "MeasurementSession":
        """Build a session from an API payload with "shapes" or "geojson" """
        session = cls(roof_pitch=data.get("roofPitch", data.get("roof_pitch")))

        if data.get("geojson") is not None:
            session.load_geojson(data["geojson"])

        shapes = data.get("shapes") or []
        if not isinstance(shapes, list):
            raise ValidationError("shapes must be a list")

        for item in shapes:
            if not isinstance(item, dict):
                raise ValidationError("Each shape must be an object with kind and points")
            session.add_shape(item.get("kind"), item.get("points") or [])

        return session

    def load_geojson(self, collection: Dict[str, Any]) -> None:
        """Load Polygon/LineString features tagged with properties.kind"""
        if not isinstance(collection, dict) or collection.get("type") != "FeatureCollection":
            raise ValidationError("geojson must be a FeatureCollection")

        features = collection.get("features", [])
        if not isinstance(features, list):
            raise ValidationError("geojson features must be a list")

        for feature in features:
            if not isinstance(feature, dict):
                raise ValidationError("Each GeoJSON feature must be an object")

            geometry = feature.get("geometry") or {}
            if not isinstance(geometry, dict):
                raise ValidationError("GeoJSON geometry must be an object")

            properties = feature.get("properties") or {}
            kind = properties.get("kind") if isinstance(properties, dict) else None
            geom_type = geometry.get("type")
            coordinates = geometry.get("coordinates")

            if geom_type not in ("Polygon", "LineString"):
                raise ValidationError(f"Unsupported geometry type: {geom_type}")
            if not isinstance(coordinates, list) or not coordinates:
                raise ValidationError(f"{geom_type} has no coordinates")

            if geom_type == "Polygon":
                ring = coordinates[0]
                if not isinstance(ring, list) or not ring:
                    raise ValidationError("Polygon outer ring is empty")
                if len(ring) > 1 and ring[0] == ring[-1]:
                    ring = ring[:-1]
                coords = ring
                kind = kind or "land"
            else:
                coords = coordinates
                kind = kind or "fence"

            if _parse_kind(kind).is_polygon != (geom_type == "Polygon"):
                raise ValidationError(f"A {kind} shape cannot be a {geom_type}")

            self.add_shape(kind, [_geojson_position(c) for c in coords])

def _geojson_position(position: Any):
    """[lng, lat] or [lng, lat, altitude] to a (lat, lng) pair"""
    if not isinstance(position, (list, tuple)) or len(position) < 2:
        raise ValidationError(f"Invalid GeoJSON position: {position!r}")

    lng, lat = position[0], position[1]
    for value in (lng, lat):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"Invalid GeoJSON position: {position!r}")

    return (lat, lng)

def _parse_kind(kind: Union[ShapeKind, str, None]) -> ShapeKind:
    if isinstance(kind, ShapeKind):
        return kind
    try:
        return ShapeKind(kind)
    except ValueError:
        raise ValidationError(f"Invalid shape kind: {kind}. Use: land, roof, or fence")
