import pytest
from fitrec.schemas.fit import Landmark, Measured, NoPoseDetected, PoseDetection
from fitrec.services.measurement import (
    estimate_girths,
    extract_from_detection,
    extract_measurements,
    is_low_confidence,
    manual_profile,
    to_pixel_space,
)


# Pixel-space pose on a 1000x2000 photo: nose-to-ankle is 1700 px,
# shoulders 430 px apart, shoulder midpoint 600 px above hip midpoint.
PIXEL_POSE = {
    "nose": Landmark(x=500, y=100),
    "left_shoulder": Landmark(x=715, y=400),
    "right_shoulder": Landmark(x=285, y=400),
    "left_hip": Landmark(x=600, y=1000),
    "right_hip": Landmark(x=400, y=1000),
    "left_ankle": Landmark(x=500, y=1800),
    "right_ankle": Landmark(x=500, y=1800),
}


def _scaled(pose, k):
    return {n: Landmark(x=p.x * k, y=p.y * k, z=p.z * k) for n, p in pose.items()}


def _normalized(pose, width, height):
    return {n: Landmark(x=p.x / width, y=p.y / height) for n, p in pose.items()}


def test_default_reference_height():
    result = extract_measurements(PIXEL_POSE, 1000, 2000)
    assert isinstance(result, Measured)
    profile = result.profile
    # 170 cm / 1700 px = 0.1 cm per px
    assert profile.height == 170
    assert profile.shoulder == 43
    assert profile.chest == 92   # 43 * 2.15 = 92.45
    assert profile.waist == 82   # 43 * 1.9 = 81.7
    assert profile.torso_ratio == 0.35  # 600 / 1700
    assert profile.confidence == 1.0


def test_user_reference_height():
    profile = extract_measurements(PIXEL_POSE, 1000, 2000, reference_height_cm=180).profile
    # 430 px * 180/1700 = 45.53 cm
    assert profile.height == 180
    assert profile.shoulder == 46
    assert profile.chest == 98
    assert profile.waist == 87


@pytest.mark.parametrize("ref", [None, 0, 40, 50])
def test_implausible_reference_falls_back_to_170(ref):
    profile = extract_measurements(PIXEL_POSE, 1000, 2000, reference_height_cm=ref).profile
    assert profile.height == 170
    assert profile.shoulder == 43


def test_calibration_is_resolution_invariant():
    base = extract_measurements(PIXEL_POSE, 1000, 2000, reference_height_cm=175).profile
    doubled = extract_measurements(_scaled(PIXEL_POSE, 2), 2000, 4000, reference_height_cm=175).profile
    halved = extract_measurements(_scaled(PIXEL_POSE, 0.5), 500, 1000, reference_height_cm=175).profile
    assert base == doubled == halved


def test_normalized_landmarks_are_scaled_first():
    norm = _normalized(PIXEL_POSE, 1000, 2000)
    full = extract_measurements(norm, 1000, 2000, reference_height_cm=175, normalized=True).profile
    small = extract_measurements(norm, 250, 500, reference_height_cm=175, normalized=True).profile
    base = extract_measurements(PIXEL_POSE, 1000, 2000, reference_height_cm=175).profile
    assert full == small == base


def test_to_pixel_space_scales_depth_by_width():
    points = to_pixel_space({"nose": Landmark(x=0.5, y=0.25, z=-0.125)}, 800, 1200)
    assert points["nose"] == Landmark(x=400, y=300, z=-100)


def test_depth_counts_toward_distance():
    flat = extract_measurements(PIXEL_POSE, 1000, 2000).profile
    deep = dict(PIXEL_POSE)
    deep["left_shoulder"] = Landmark(x=715, y=400, z=300)
    assert extract_measurements(deep, 1000, 2000).profile.shoulder > flat.shoulder


def test_provider_confidence_is_reported_not_rejected():
    result = extract_measurements(PIXEL_POSE, 1000, 2000, confidence=0.4)
    assert isinstance(result, Measured)
    assert result.profile.confidence == 0.4
    assert is_low_confidence(result.profile)
    assert not is_low_confidence(result.profile, threshold=0.3)


@pytest.mark.parametrize("landmarks", [None, {}])
def test_no_landmarks_is_a_result(landmarks):
    result = extract_measurements(landmarks, 1000, 2000)
    assert isinstance(result, NoPoseDetected)
    assert result.reason == "no_landmarks"


def test_missing_required_landmark():
    partial = {n: p for n, p in PIXEL_POSE.items() if n != "right_ankle"}
    result = extract_measurements(partial, 1000, 2000)
    assert isinstance(result, NoPoseDetected)
    assert result.reason == "missing_landmarks"
    assert result.missing == ("right_ankle",)


def test_collapsed_pose_is_degenerate():
    collapsed = {n: Landmark(x=10, y=10) for n in PIXEL_POSE}
    result = extract_measurements(collapsed, 1000, 2000)
    assert isinstance(result, NoPoseDetected)
    assert result.reason == "degenerate_pose"


def test_extract_from_detection():
    detection = PoseDetection(
        landmarks=_normalized(PIXEL_POSE, 1000, 2000),
        image_width=1000,
        image_height=2000,
        normalized=True,
        confidence=0.9,
    )
    profile = extract_from_detection(detection).profile
    assert profile.shoulder == 43
    assert profile.confidence == 0.9


def test_estimate_girths():
    chest, waist = estimate_girths(40)
    assert chest == pytest.approx(86.0)
    assert waist == pytest.approx(76.0)


def test_manual_profile_is_trusted():
    profile = manual_profile(height=175, chest=95, waist=80, shoulder=45)
    assert profile.confidence is None
    assert profile.trust == 1.0
    assert profile.torso_ratio == 0.52
    assert not is_low_confidence(profile)


def test_manual_profile_with_torso_length():
    profile = manual_profile(height=175, chest=95, waist=80, shoulder=45, torso_length=87.5)
    assert profile.torso_ratio == 0.5


def test_configured_default_reference_height():
    profile = extract_measurements(PIXEL_POSE, 1000, 2000, default_reference_height_cm=160).profile
    # 430 px * 160/1700 = 40.47 cm
    assert profile.height == 160
    assert profile.shoulder == 40
    assert profile.chest == 87
    assert profile.waist == 77


def test_user_height_beats_configured_default():
    profile = extract_measurements(
        PIXEL_POSE, 1000, 2000, reference_height_cm=180, default_reference_height_cm=160
    ).profile
    assert profile.height == 180
