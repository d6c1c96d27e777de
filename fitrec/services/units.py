from typing import Any, Dict, List, Mapping, Optional


CM_PER_INCH = 2.54

LENGTH_FIELDS = {"height", "chest", "waist", "shoulder", "shoulder_width", "shoulder_to_shoulder", "length", "torso_length"}


def inches_to_cm(inches: float) -> float:
    return inches * CM_PER_INCH


def _is_inch(unit: Optional[str]) -> bool:
    return (unit or "cm").lower() in ("inch", "inches", "in")


def row_to_cm(row: Mapping[str, Any], unit: Optional[str]) -> Dict[str, Any]:
    """Convert the length fields of one measurement/chart row to cm.

    Non-numeric values are passed through untouched so the engine can skip
    the row as incomplete.
    """
    if not _is_inch(unit):
        return dict(row)
    out: Dict[str, Any] = {}
    for k, v in row.items():
        if str(k).lower() in LENGTH_FIELDS and isinstance(v, (int, float)) and not isinstance(v, bool):
            out[k] = inches_to_cm(float(v))
        else:
            out[k] = v
    return out


def chart_to_cm(rows: List[Mapping[str, Any]], unit: Optional[str]) -> List[Dict[str, Any]]:
    return [row_to_cm(r, unit) if isinstance(r, Mapping) else r for r in rows]
