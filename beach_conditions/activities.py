"""Deterministic activity-suitability scoring.

Each activity has a profile of weights and preferences. An hour is scored by
rating every factor (temperature, water quality, wind, UV, tide, crowd, time
of day) on 0..1, then taking the weighted mean and scaling it to 0..100.
Weather that makes an activity unsafe or pointless blocks the hour outright
with a score of 0.

Adjacent hours scoring at least ``WINDOW_THRESHOLD`` are grouped into
windows; a window is rated by its best hour.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from .crowd import estimate_crowd
from .models import (
    Activity,
    ActivityOutlook,
    ActivityWindow,
    ConditionsSnapshot,
    ScoreFactors,
    TimeSlotScore,
    WaterStatus,
    WeatherCondition,
)

FIRST_HOUR = 6
LAST_HOUR = 21
DEFAULT_MAX_TIDE = 4.8
WINDOW_THRESHOLD = 50
TIME_OF_DAY_WEIGHT = 0.1


class TidePreference(str, Enum):
    HIGH = "high"
    MID = "mid"
    LOW = "low"
    ANY = "any"


class UvPreference(str, Enum):
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"
    ANY = "any"


class ActivityProfile(BaseModel):
    """Weights and ideal ranges used to score hours for one activity."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    activity: Activity
    temp_weight: float
    temp_ideal_range: Tuple[float, float]  # °C
    water_quality_weight: float
    wind_weight: float
    wind_ideal_range: Tuple[float, float]  # km/h
    uv_weight: float
    uv_preference: UvPreference
    tide_weight: float
    tide_preference: TidePreference
    crowd_weight: float  # higher = more crowd-averse
    time_of_day_scorer: Optional[Callable[[int], float]] = None


ACTIVITY_LABELS = {
    Activity.SWIMMING: "Swimming",
    Activity.SUNBATHING: "Sunbathing",
    Activity.SAILING: "Sailing",
    Activity.SUNSET: "Sunset",
    Activity.PEACE: "Peace & Quiet",
}

ACTIVITY_ALIASES = {
    "swim": Activity.SWIMMING,
    "swimming": Activity.SWIMMING,
    "sun": Activity.SUNBATHING,
    "sunbathing": Activity.SUNBATHING,
    "sunbathe": Activity.SUNBATHING,
    "sail": Activity.SAILING,
    "sailing": Activity.SAILING,
    "sunset": Activity.SUNSET,
    "peace": Activity.PEACE,
    "quiet": Activity.PEACE,
}


def parse_activity(value: str) -> Optional[Activity]:
    """Case-insensitive lookup that accepts short aliases like "swim" or "quiet"."""
    return ACTIVITY_ALIASES.get(value.strip().lower())


def activity_label(activity: Activity) -> str:
    return ACTIVITY_LABELS[activity]


def sunset_time_scorer(hour: int) -> float:
    """Fixed evening preference, used when the real sunset time is unknown."""
    if 18 <= hour <= 20:
        return 1.0
    if hour in (17, 21):
        return 0.7
    if hour in (16, 22):
        return 0.3
    return 0.1


def sunset_time_scorer_dynamic(hour: int, sunset_hour: int) -> float:
    """Score an hour by its distance from the actual sunset hour."""
    diff = abs(hour - sunset_hour)
    if diff == 0:
        return 1.0
    if diff == 1:
        return 0.9
    if diff == 2:
        return 0.5
    if diff == 3:
        return 0.2
    return 0.1


def peace_time_scorer(hour: int) -> float:
    """Quiet time peaks in the early morning."""
    if 6 <= hour <= 7:
        return 1.0
    if hour == 8:
        return 0.8
    if hour in (5, 9):
        return 0.5
    return 0.2


PROFILES: Dict[Activity, ActivityProfile] = {
    Activity.SWIMMING: ActivityProfile(
        activity=Activity.SWIMMING,
        temp_weight=0.3,
        temp_ideal_range=(20.0, 28.0),
        water_quality_weight=0.4,
        wind_weight=0.1,
        wind_ideal_range=(0.0, 15.0),
        uv_weight=0.05,
        uv_preference=UvPreference.MODERATE,
        tide_weight=0.15,
        tide_preference=TidePreference.MID,
        crowd_weight=0.1,
    ),
    Activity.SUNBATHING: ActivityProfile(
        activity=Activity.SUNBATHING,
        temp_weight=0.35,
        temp_ideal_range=(24.0, 32.0),
        water_quality_weight=0.0,
        wind_weight=0.25,
        wind_ideal_range=(0.0, 10.0),
        uv_weight=0.25,
        uv_preference=UvPreference.HIGH,
        tide_weight=0.0,
        tide_preference=TidePreference.ANY,
        crowd_weight=0.15,
    ),
    Activity.SAILING: ActivityProfile(
        activity=Activity.SAILING,
        temp_weight=0.1,
        temp_ideal_range=(15.0, 30.0),
        water_quality_weight=0.0,
        wind_weight=0.6,
        wind_ideal_range=(15.0, 25.0),
        uv_weight=0.0,
        uv_preference=UvPreference.ANY,
        tide_weight=0.2,
        tide_preference=TidePreference.HIGH,
        crowd_weight=0.1,
    ),
    Activity.SUNSET: ActivityProfile(
        activity=Activity.SUNSET,
        temp_weight=0.15,
        temp_ideal_range=(15.0, 28.0),
        water_quality_weight=0.0,
        wind_weight=0.1,
        wind_ideal_range=(0.0, 20.0),
        uv_weight=0.0,
        uv_preference=UvPreference.ANY,
        tide_weight=0.0,
        tide_preference=TidePreference.ANY,
        crowd_weight=0.15,
        time_of_day_scorer=sunset_time_scorer,
    ),
    Activity.PEACE: ActivityProfile(
        activity=Activity.PEACE,
        temp_weight=0.1,
        temp_ideal_range=(12.0, 25.0),
        water_quality_weight=0.0,
        wind_weight=0.1,
        wind_ideal_range=(0.0, 15.0),
        uv_weight=0.1,
        uv_preference=UvPreference.LOW,
        tide_weight=0.0,
        tide_preference=TidePreference.ANY,
        crowd_weight=0.7,
        time_of_day_scorer=peace_time_scorer,
    ),
}


def get_profile(activity: Activity) -> ActivityProfile:
    return PROFILES[activity]


def _clamp_unit(value: float) -> float:
    """Clamp a factor score to the 0-1 range."""
    return max(0.0, min(1.0, value))


def score_temperature(profile: ActivityProfile, temp: float) -> float:
    """1.0 inside the ideal range, falling linearly to 0.0 five degrees outside it."""
    lower, upper = profile.temp_ideal_range
    if temp < lower - 5.0 or temp > upper + 5.0:
        return 0.0
    if lower <= temp <= upper:
        return 1.0
    if temp < lower:
        return _clamp_unit((temp - (lower - 5.0)) / 5.0)
    return _clamp_unit((upper + 5.0 - temp) / 5.0)


def score_wind(profile: ActivityProfile, wind: float) -> float:
    """1.0 inside the ideal range; fades to 0.0 at half again above the upper bound."""
    lower, upper = profile.wind_ideal_range
    if lower <= wind <= upper:
        return 1.0
    if wind < lower:
        return _clamp_unit(wind / lower) if lower > 0 else 1.0
    if upper <= 0:
        return 0.0
    return _clamp_unit((upper * 1.5 - wind) / (upper * 0.5))


def score_water_quality(status: WaterStatus) -> float:
    if status == WaterStatus.SAFE:
        return 1.0
    if status == WaterStatus.ADVISORY:
        return 0.3
    if status == WaterStatus.CLOSED:
        return 0.0
    return 0.5


def score_uv(profile: ActivityProfile, uv: float) -> float:
    pref = profile.uv_preference
    if pref == UvPreference.HIGH:
        return _clamp_unit(uv / 8.0)
    if pref == UvPreference.MODERATE:
        return 1.0 - _clamp_unit(abs(uv - 5.0) / 5.0)
    if pref == UvPreference.LOW:
        return _clamp_unit(1.0 - uv / 6.0)
    return 1.0


def score_tide(profile: ActivityProfile, height: float, max_height: float) -> float:
    """Rate a tide height normalized against ``max_height`` (0 = low water, 1 = high water)."""
    normalized = _clamp_unit(height / max_height) if max_height > 0 else 0.5
    pref = profile.tide_preference
    if pref == TidePreference.HIGH:
        return normalized
    if pref == TidePreference.MID:
        return _clamp_unit(1.0 - abs(normalized - 0.5) * 2.0)
    if pref == TidePreference.LOW:
        return 1.0 - normalized
    return 1.0


def score_crowd(crowd_level: float) -> float:
    """Inverted: a packed beach scores 0."""
    return 1.0 - _clamp_unit(crowd_level)


def score_time_slot(
    profile: ActivityProfile,
    hour: int,
    location_id: str,
    *,
    temperature: float,
    wind: float,
    uv: float,
    water_status: WaterStatus,
    tide_height: float,
    max_tide: float,
    crowd_level: float,
    time_score: float | None = None,
) -> TimeSlotScore:
    """Weighted 0-100 score for one hour; ``time_score`` overrides the profile's time-of-day scorer."""
    if time_score is None:
        time_score = profile.time_of_day_scorer(hour) if profile.time_of_day_scorer else 1.0

    factors = ScoreFactors(
        temperature=score_temperature(profile, temperature),
        water_quality=score_water_quality(water_status),
        wind=score_wind(profile, wind),
        uv=score_uv(profile, uv),
        tide=score_tide(profile, tide_height, max_tide),
        crowd=score_crowd(crowd_level),
        time_of_day=_clamp_unit(time_score),
    )

    weighted_sum = (
        factors.temperature * profile.temp_weight
        + factors.water_quality * profile.water_quality_weight
        + factors.wind * profile.wind_weight
        + factors.uv * profile.uv_weight
        + factors.tide * profile.tide_weight
        + factors.crowd * profile.crowd_weight
        + factors.time_of_day * TIME_OF_DAY_WEIGHT
    )
    total_weight = (
        profile.temp_weight
        + profile.water_quality_weight
        + profile.wind_weight
        + profile.uv_weight
        + profile.tide_weight
        + profile.crowd_weight
        + TIME_OF_DAY_WEIGHT
    )
    score = int(max(0.0, min(100.0, weighted_sum / total_weight * 100.0)))

    return TimeSlotScore(
        hour=hour,
        location_id=location_id,
        activity=profile.activity,
        score=score,
        factors=factors,
    )


_RAIN = {WeatherCondition.RAIN, WeatherCondition.SHOWERS}


def check_sanity_gates(
    profile: ActivityProfile,
    temperature: float,
    wind: float,
    condition: WeatherCondition | None,
) -> Optional[str]:
    """Return why the weather rules the activity out, or None when it can go ahead."""
    if condition == WeatherCondition.SNOW:
        return "Snow conditions are unsafe for beach activities"
    if condition == WeatherCondition.THUNDERSTORM:
        return "Thunderstorm conditions are dangerous"

    activity = profile.activity
    if activity == Activity.SWIMMING:
        if temperature < 15.0:
            return f"Temperature {temperature:.1f}°C is too cold for swimming (minimum 15°C)"
        if condition in _RAIN:
            return "Rain makes swimming unsafe and unpleasant"
    elif activity == Activity.SUNBATHING:
        if temperature < 18.0:
            return f"Temperature {temperature:.1f}°C is too cold for sunbathing (minimum 18°C)"
        if condition == WeatherCondition.CLOUDY:
            return "Overcast conditions are not suitable for sunbathing"
        if condition in _RAIN:
            return "Rain makes sunbathing impossible"
    elif activity == Activity.SAILING:
        if wind > 40.0:
            return f"Wind speed {wind:.1f} km/h is dangerously high for sailing (maximum 40 km/h)"
    return None


def score_gated_time_slot(
    profile: ActivityProfile,
    hour: int,
    location_id: str,
    *,
    condition: WeatherCondition | None,
    **inputs,
) -> TimeSlotScore:
    """Like ``score_time_slot`` but returns a zero, blocked score when a sanity gate trips."""
    reason = check_sanity_gates(profile, inputs["temperature"], inputs["wind"], condition)
    if reason is not None:
        return TimeSlotScore(
            hour=hour,
            location_id=location_id,
            activity=profile.activity,
            score=0,
            factors=ScoreFactors(
                temperature=0.0, water_quality=0.0, wind=0.0, uv=0.0, tide=0.0, crowd=0.0, time_of_day=0.0
            ),
            blocked=True,
            block_reason=reason,
        )
    return score_time_slot(profile, hour, location_id, **inputs)


def _hour_weather(snapshot: ConditionsSnapshot, hour: int):
    """(temperature, wind, uv, condition) for ``hour``, preferring the hourly forecast."""
    weather = snapshot.weather
    for forecast in weather.hourly:
        if forecast.hour == hour:
            return forecast.temperature, forecast.wind, forecast.uv, forecast.condition
    return weather.temperature, weather.wind, weather.uv, weather.condition


def score_day(
    snapshot: ConditionsSnapshot,
    activity: Activity,
    *,
    now: dt.datetime | None = None,
) -> List[TimeSlotScore]:
    """Score the remaining daytime hours (6:00 to 21:00) of ``now``'s day.

    Hours before ``now`` are skipped. Sunset viewing stops at the sunset hour
    and leans heavily on how close each hour is to it. Without weather
    nothing can be scored.
    """
    if snapshot.weather is None:
        return []
    now = now or dt.datetime.now()
    profile = get_profile(activity)

    sunset_hour = snapshot.weather.sunset.hour
    end_hour = min(sunset_hour, LAST_HOUR) if activity == Activity.SUNSET else LAST_HOUR
    start_hour = max(now.hour, FIRST_HOUR)
    if start_hour > end_hour:
        return []

    water_status = (
        snapshot.water_quality.effective_status(now.date())
        if snapshot.water_quality is not None
        else WaterStatus.UNKNOWN
    )

    if snapshot.tides is not None:
        max_tide = snapshot.tides.next_high.height if snapshot.tides.next_high else DEFAULT_MAX_TIDE
        if max_tide <= 0:
            max_tide = DEFAULT_MAX_TIDE
        tide_heights: Sequence[float] = snapshot.tides.hourly_heights(max_tide)
    else:
        max_tide = DEFAULT_MAX_TIDE
        tide_heights = [DEFAULT_MAX_TIDE / 2.0] * (LAST_HOUR - FIRST_HOUR + 1)

    scores: List[TimeSlotScore] = []
    for hour in range(start_hour, end_hour + 1):
        temperature, wind, uv, condition = _hour_weather(snapshot, hour)
        time_score = sunset_time_scorer_dynamic(hour, sunset_hour) if activity == Activity.SUNSET else None

        slot = score_gated_time_slot(
            profile,
            hour,
            snapshot.location.id,
            condition=condition,
            temperature=temperature,
            wind=wind,
            uv=uv,
            water_status=water_status,
            tide_height=tide_heights[hour - FIRST_HOUR],
            max_tide=max_tide,
            crowd_level=estimate_crowd(now.month, now.weekday(), hour),
            time_score=time_score,
        )
        if activity == Activity.SUNSET and not slot.blocked:
            # timing dominates sunset viewing
            adjusted = slot.score * (0.3 + 0.7 * time_score)
            slot = slot.model_copy(update={"score": int(max(0.0, min(100.0, adjusted)))})
        scores.append(slot)
    return scores


_READABLE_FACTORS = {
    "temp": "great temp",
    "water": "safe water",
    "wind": "calm winds",
    "uv": "good UV",
    "tide": "ideal tide",
    "crowd": "low crowds",
    "timing": "perfect timing",
}


def reason_from_factors(factors: ScoreFactors, activity: Activity) -> str:
    """Name up to three strong factors (above 0.6) behind a score."""
    candidates = [
        ("temp", factors.temperature),
        ("wind", factors.wind),
        ("uv", factors.uv),
        ("timing", factors.time_of_day),
    ]
    if activity == Activity.SWIMMING:
        candidates.append(("water", factors.water_quality))
    if activity in (Activity.SWIMMING, Activity.SAILING):
        candidates.append(("tide", factors.tide))
    if activity in (Activity.PEACE, Activity.SUNBATHING):
        candidates.append(("crowd", factors.crowd))

    candidates.sort(key=lambda item: -item[1])
    good = [_READABLE_FACTORS[name] for name, value in candidates if value > 0.6][:3]
    return ", ".join(good) if good else "mixed conditions"


def _window(start: TimeSlotScore, end: TimeSlotScore, best: TimeSlotScore, activity: Activity) -> ActivityWindow:
    return ActivityWindow(
        start_hour=start.hour,
        end_hour=end.hour + 1,
        score=best.score,
        reason=reason_from_factors(best.factors, activity),
        factors=best.factors,
    )


def group_into_windows(
    scores: Sequence[TimeSlotScore],
    activity: Activity,
    *,
    threshold: int = WINDOW_THRESHOLD,
) -> List[ActivityWindow]:
    """
    Group adjacent hours scoring at least ``threshold`` into windows, best first.

    - A window's score is its best hour's score.
    - Without any qualifying hour, the three best unblocked single hours are
      returned instead.
    """
    windows: List[ActivityWindow] = []
    run: List[TimeSlotScore] = []

    def close_run() -> None:
        if run:
            best = run[0]
            for slot in run[1:]:
                if slot.score > best.score:
                    best = slot
            windows.append(_window(run[0], run[-1], best, activity))
            run.clear()

    for slot in scores:
        contiguous = not run or slot.hour == run[-1].hour + 1
        if slot.score >= threshold and contiguous:
            run.append(slot)
            continue
        close_run()
        if slot.score >= threshold:
            run.append(slot)
    close_run()

    if not windows:
        ranked = sorted((s for s in scores if not s.blocked), key=lambda s: -s.score)
        windows = [_window(slot, slot, slot, activity) for slot in ranked[:3]]

    windows.sort(key=lambda w: -w.score)
    return windows


def build_outlook(
    snapshot: ConditionsSnapshot,
    activity: Activity,
    *,
    now: dt.datetime | None = None,
) -> ActivityOutlook:
    """Score the rest of the day for ``activity`` and pick its best windows."""
    hours = score_day(snapshot, activity, now=now)
    return ActivityOutlook(
        location_id=snapshot.location.id,
        activity=activity,
        hours=hours,
        best_windows=group_into_windows(hours, activity),
    )
