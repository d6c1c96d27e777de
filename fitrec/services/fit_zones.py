from typing import List, Tuple
from ..schemas.fit import BodyMeasurementProfile, FitArea, FitStatus, FitZone, SizeChartEntry


# (tight below, loose above) in cm of garment minus body
ZONE_BANDS = {
    FitArea.CHEST: (-1.0, 6.0),
    FitArea.SHOULDER: (0.0, 4.0),
    FitArea.WAIST: (0.0, 8.0),
}


def classify_difference(area: FitArea, difference: float) -> FitStatus:
    low, high = ZONE_BANDS[area]
    if difference < low:
        return FitStatus.TIGHT
    if difference > high:
        return FitStatus.LOOSE
    return FitStatus.GOOD


def _zone(area: FitArea, garment_cm: float, body_cm: float) -> FitZone:
    diff = garment_cm - body_cm
    return FitZone(area=area, status=classify_difference(area, diff), difference=diff)


def length_zone() -> FitZone:
    # Torso length is not calibrated yet, so length always reads as a neutral fit.
    return FitZone(area=FitArea.LENGTH, status=FitStatus.GOOD, difference=0.0)


def calculate_fit_zones(body: BodyMeasurementProfile, garment: SizeChartEntry) -> Tuple[FitZone, ...]:
    """Compare one size against the body, zone by zone.

    Order is fixed: chest, shoulder, waist (only when the chart has it), length.
    """
    zones: List[FitZone] = [
        _zone(FitArea.CHEST, garment.chest, body.chest),
        _zone(FitArea.SHOULDER, garment.shoulder, body.shoulder),
    ]
    if garment.waist is not None:
        zones.append(_zone(FitArea.WAIST, garment.waist, body.waist))
    zones.append(length_zone())
    return tuple(zones)
