"""
JSON-compatible key-value form of ``FrameDimsResult``.

The dict layout is the one stored in an annotation's ``custom_props``:
snake_case keys, vectors as 3-element lists, OBB axes as three column
lists, and optional sections omitted when absent.
"""
import json
import logging
import math
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

from frame_dims.contracts import (
    EdgeDistances,
    FrameAxes,
    FrameDimsAggregate,
    FrameDimsMeta,
    FrameDimsProjected,
    FrameDimsResult,
    FrameDimsSizes,
    Plane,
    ResultStatus,
    SerializationError,
    EDGE_KEYS,
)
from frame_dims.geometry import AABB, OBB, Vec3

logger = logging.getLogger(__name__)

FRAME_DIMS_KEY = "frame_dims"
MESH_FRAME_DIMS_KEY = "frame_dims_mesh"


# ─── Encoding ────────────────────────────────────────────────────────────────


def _vec(v: Vec3) -> List[float]:
    return [float(v[0]), float(v[1]), float(v[2])]


def aabb_to_dict(aabb: AABB) -> Dict[str, Any]:
    return {"min": _vec(aabb.min), "max": _vec(aabb.max)}


def obb_to_dict(obb: OBB) -> Dict[str, Any]:
    return {
        "center": _vec(obb.center),
        "axes": [_vec(column) for column in obb.axes],
        "extents": _vec(obb.extents),
    }


def result_to_dict(result: FrameDimsResult) -> Dict[str, Any]:
    """Convert a result into plain dicts/lists/floats/strings."""
    data: Dict[str, Any] = {
        "version": int(result.version),
        "units": result.units,
        "fo_axes": {"x": result.fo_axes.x, "y": result.fo_axes.y, "z": result.fo_axes.z},
    }
    if result.rm_kind is not None:
        data["rm_kind"] = result.rm_kind
    if result.planes is not None:
        data["planes"] = {
            key: {"n": _vec(plane.n), "d": float(plane.d)}
            for key, plane in result.planes.items()
        }
    data["per_edge"] = {
        key: {"per_point": {pid: float(d) for pid, d in edge.per_point.items()}}
        for key, edge in result.per_edge.items()
    }
    data["aggregate"] = {key: float(v) for key, v in result.aggregate.as_dict().items()}
    data["sizes"] = {
        "aabb": aabb_to_dict(result.sizes.aabb),
        "obb": obb_to_dict(result.sizes.obb),
    }
    if result.projected is not None:
        projected: Dict[str, Any] = {}
        if result.projected.aabb is not None:
            projected["aabb"] = aabb_to_dict(result.projected.aabb)
        if result.projected.obb is not None:
            projected["obb"] = obb_to_dict(result.projected.obb)
        data["projected"] = projected

    meta: Dict[str, Any] = {
        "epsilon": float(result.meta.epsilon),
        "status": result.meta.status.value,
    }
    if result.meta.computed_at_iso is not None:
        meta["computed_at_iso"] = result.meta.computed_at_iso
    if result.meta.notes:
        meta["notes"] = result.meta.notes
    data["meta"] = meta
    return data


def result_to_json(result: FrameDimsResult, indent: Optional[int] = 2) -> str:
    return json.dumps(result_to_dict(result), indent=indent)


# ─── Decoding ────────────────────────────────────────────────────────────────


def _read_vec(value: Any, name: str) -> Vec3:
    if not isinstance(value, (list, tuple)) or len(value) != 3:
        raise SerializationError(f"{name} must have 3 components")
    try:
        return (float(value[0]), float(value[1]), float(value[2]))
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"{name} components must be numbers") from exc


def _read_number(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"{name} must be a number, got {value!r}") from exc


def _mapping(value: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SerializationError(f"{name} must be a mapping")
    return value


def _require(data: Mapping[str, Any], key: str, where: str) -> Any:
    if not isinstance(data, Mapping) or key not in data:
        raise SerializationError(f"Missing '{key}' in {where}")
    return data[key]


def aabb_from_dict(data: Mapping[str, Any]) -> AABB:
    return AABB(
        min=_read_vec(_require(data, "min", "aabb"), "AABB min"),
        max=_read_vec(_require(data, "max", "aabb"), "AABB max"),
    )


def obb_from_dict(data: Mapping[str, Any]) -> OBB:
    axes = _require(data, "axes", "obb")
    if not isinstance(axes, (list, tuple)) or len(axes) != 3:
        raise SerializationError("OBB axes must be a 3x3 array")
    return OBB(
        center=_read_vec(_require(data, "center", "obb"), "OBB center"),
        axes=tuple(_read_vec(col, "OBB axis") for col in axes),
        extents=_read_vec(_require(data, "extents", "obb"), "OBB extents"),
    )


def result_from_dict(data: Mapping[str, Any]) -> FrameDimsResult:
    """Rebuild a result from its key-value form.

    Raises:
        SerializationError: missing sections or wrongly shaped vectors.
    """
    if not isinstance(data, Mapping):
        raise SerializationError("frame dims payload must be a mapping")

    per_edge_raw = _require(data, "per_edge", "result")
    if not isinstance(per_edge_raw, Mapping):
        raise SerializationError("per_edge must be a mapping")
    per_edge = {}
    for key, edge in per_edge_raw.items():
        per_point = _require(edge, "per_point", f"per_edge.{key}")
        try:
            per_edge[key] = EdgeDistances({str(pid): float(d) for pid, d in per_point.items()})
        except (AttributeError, TypeError, ValueError) as exc:
            raise SerializationError(f"per_edge.{key}.per_point must map ids to numbers") from exc

    agg_raw = _require(data, "aggregate", "result")
    try:
        aggregate = FrameDimsAggregate(**{key: float(agg_raw.get(key, 0.0)) for key in EDGE_KEYS})
    except (AttributeError, TypeError, ValueError) as exc:
        raise SerializationError("aggregate must map edges to numbers") from exc

    sizes_raw = _require(data, "sizes", "result")
    sizes = FrameDimsSizes(
        aabb=aabb_from_dict(_require(sizes_raw, "aabb", "sizes")),
        obb=obb_from_dict(_require(sizes_raw, "obb", "sizes")),
    )

    projected = None
    if data.get("projected") is not None:
        proj_raw = _mapping(data["projected"], "projected")
        projected = FrameDimsProjected(
            aabb=aabb_from_dict(proj_raw["aabb"]) if proj_raw.get("aabb") else None,
            obb=obb_from_dict(proj_raw["obb"]) if proj_raw.get("obb") else None,
        )

    planes = None
    if data.get("planes") is not None:
        planes = {
            key: Plane(
                n=_read_vec(_require(p, "n", f"planes.{key}"), "plane normal"),
                d=_read_number(_require(p, "d", f"planes.{key}"), f"planes.{key}.d"),
            )
            for key, p in _mapping(data["planes"], "planes").items()
        }

    meta_raw = _mapping(data.get("meta") or {}, "meta")
    try:
        status = ResultStatus(meta_raw.get("status", ResultStatus.OK.value))
    except ValueError as exc:
        raise SerializationError(f"Unknown status {meta_raw.get('status')!r}") from exc
    meta = FrameDimsMeta(
        notes=meta_raw.get("notes", "") or "",
        epsilon=_read_number(meta_raw.get("epsilon", 1e-5), "meta.epsilon"),
        status=status,
        computed_at_iso=meta_raw.get("computed_at_iso"),
    )

    axes_raw = _mapping(data.get("fo_axes") or {}, "fo_axes")
    fo_axes = FrameAxes(**{k: axes_raw[k] for k in ("x", "y", "z") if k in axes_raw})

    version = _read_number(data.get("version", 1), "version")
    if not math.isfinite(version):
        raise SerializationError(f"version must be finite, got {version!r}")
    version = int(version)

    return FrameDimsResult(
        per_edge=per_edge,
        aggregate=aggregate,
        sizes=sizes,
        meta=meta,
        version=version,
        units=data.get("units", "m"),
        fo_axes=fo_axes,
        rm_kind=data.get("rm_kind"),
        planes=planes,
        projected=projected,
    )


# ─── Custom props hand-off ───────────────────────────────────────────────────


def attach_frame_dims(
    custom_props: MutableMapping[str, Any],
    result: FrameDimsResult,
    key: str = MESH_FRAME_DIMS_KEY,
) -> MutableMapping[str, Any]:
    """Store *result* under *key* in an annotation's custom props."""
    custom_props[key] = result_to_dict(result)
    return custom_props


def frame_dims_from_props(
    custom_props: Mapping[str, Any],
    key: str = MESH_FRAME_DIMS_KEY,
) -> Optional[FrameDimsResult]:
    """Read a stored result back, or None if absent or unreadable."""
    payload = custom_props.get(key)
    if not isinstance(payload, Mapping):
        return None
    try:
        return result_from_dict(payload)
    except SerializationError as exc:
        logger.warning("Failed to decode %s: %s", key, exc)
        return None
