import pytest
from fitrec.schemas.fit import BodyMeasurementProfile, FitArea, FitStatus, SizeChartEntry
from fitrec.services.fit_zones import ZONE_BANDS, calculate_fit_zones, classify_difference


BODY = BodyMeasurementProfile(height=175, chest=95, waist=80, shoulder=45)


def _garment(**kw) -> SizeChartEntry:
    base = {"size": "M", "chest": 96.0, "length": 70.0, "shoulder": 44.0, "waist": 86.0}
    base.update(kw)
    return SizeChartEntry(**base)


def test_zones_fixed_order_and_values():
    zones = calculate_fit_zones(BODY, _garment())
    assert [z.area for z in zones] == [FitArea.CHEST, FitArea.SHOULDER, FitArea.WAIST, FitArea.LENGTH]
    chest, shoulder, waist, length = zones
    assert chest.difference == 1.0 and chest.status == FitStatus.GOOD
    assert shoulder.difference == -1.0 and shoulder.status == FitStatus.TIGHT
    assert waist.difference == 6.0 and waist.status == FitStatus.GOOD
    assert length.difference == 0.0 and length.status == FitStatus.GOOD


def test_waist_zone_omitted_without_chart_waist():
    zones = calculate_fit_zones(BODY, _garment(waist=None))
    assert [z.area for z in zones] == [FitArea.CHEST, FitArea.SHOULDER, FitArea.LENGTH]


def test_length_is_always_neutral():
    # Wildly long or short garments still read as a good length
    for length in (40.0, 70.0, 140.0):
        zone = calculate_fit_zones(BODY, _garment(length=length))[-1]
        assert zone.area == FitArea.LENGTH
        assert zone.status == FitStatus.GOOD
        assert zone.difference == 0.0


@pytest.mark.parametrize(
    "chest,expected",
    [
        (93.5, FitStatus.TIGHT),   # -1.5
        (94.0, FitStatus.GOOD),    # -1, tight side of band is inclusive
        (101.0, FitStatus.GOOD),   # +6
        (101.5, FitStatus.LOOSE),  # +6.5
    ],
)
def test_chest_band_is_asymmetric(chest, expected):
    assert calculate_fit_zones(BODY, _garment(chest=chest))[0].status == expected


@pytest.mark.parametrize(
    "shoulder,expected",
    [(44.5, FitStatus.TIGHT), (45.0, FitStatus.GOOD), (49.0, FitStatus.GOOD), (49.5, FitStatus.LOOSE)],
)
def test_shoulder_band(shoulder, expected):
    assert calculate_fit_zones(BODY, _garment(shoulder=shoulder))[1].status == expected


@pytest.mark.parametrize(
    "waist,expected",
    [(79.5, FitStatus.TIGHT), (80.0, FitStatus.GOOD), (88.0, FitStatus.GOOD), (88.5, FitStatus.LOOSE)],
)
def test_waist_band(waist, expected):
    assert calculate_fit_zones(BODY, _garment(waist=waist))[2].status == expected


@pytest.mark.parametrize("area", [FitArea.CHEST, FitArea.SHOULDER, FitArea.WAIST])
def test_status_matches_band(area):
    low, high = ZONE_BANDS[area]
    for tenth in range(-150, 150):
        diff = tenth / 10.0
        status = classify_difference(area, diff)
        if status == FitStatus.GOOD:
            assert low <= diff <= high
        elif status == FitStatus.TIGHT:
            assert diff < low
        else:
            assert diff > high
