"""
Record type catalog - every exportable record kind and the read permission it needs
"""
from typing import Dict, FrozenSet, Tuple

from .records import RecordKind


PERMISSION_PREFIX = "android.permission.health.READ_"

# Export order; payload keys follow it.
RECORD_KINDS: Tuple[RecordKind, ...] = (
    # Activity
    RecordKind.ACTIVE_CALORIES_BURNED,
    RecordKind.DISTANCE,
    RecordKind.ELEVATION_GAINED,
    RecordKind.EXERCISE_SESSION,
    RecordKind.FLOORS_CLIMBED,
    RecordKind.POWER,
    RecordKind.SPEED,
    RecordKind.STEPS,
    RecordKind.STEPS_CADENCE,
    RecordKind.TOTAL_CALORIES_BURNED,
    RecordKind.WHEELCHAIR_PUSHES,
    RecordKind.CYCLING_PEDALING_CADENCE,
    RecordKind.VO2_MAX,
    # Body measurements
    RecordKind.BASAL_METABOLIC_RATE,
    RecordKind.BODY_FAT,
    RecordKind.BODY_WATER_MASS,
    RecordKind.BONE_MASS,
    RecordKind.HEIGHT,
    RecordKind.LEAN_BODY_MASS,
    RecordKind.WEIGHT,
    # Vitals
    RecordKind.BASAL_BODY_TEMPERATURE,
    RecordKind.BLOOD_GLUCOSE,
    RecordKind.BLOOD_PRESSURE,
    RecordKind.BODY_TEMPERATURE,
    RecordKind.HEART_RATE,
    RecordKind.HEART_RATE_VARIABILITY_RMSSD,
    RecordKind.OXYGEN_SATURATION,
    RecordKind.RESPIRATORY_RATE,
    RecordKind.RESTING_HEART_RATE,
    # Cycle tracking
    RecordKind.CERVICAL_MUCUS,
    RecordKind.INTERMENSTRUAL_BLEEDING,
    RecordKind.MENSTRUATION_FLOW,
    RecordKind.MENSTRUATION_PERIOD,
    RecordKind.OVULATION_TEST,
    RecordKind.SEXUAL_ACTIVITY,
    # Nutrition
    RecordKind.HYDRATION,
    RecordKind.NUTRITION,
    # Sleep
    RecordKind.SLEEP_SESSION,
)

# Several kinds are read under a shared permission.
_PERMISSION_NAMES: Dict[RecordKind, str] = {
    RecordKind.ACTIVE_CALORIES_BURNED: "ACTIVE_CALORIES_BURNED",
    RecordKind.DISTANCE: "DISTANCE",
    RecordKind.ELEVATION_GAINED: "ELEVATION_GAINED",
    RecordKind.EXERCISE_SESSION: "EXERCISE",
    RecordKind.FLOORS_CLIMBED: "FLOORS_CLIMBED",
    RecordKind.POWER: "POWER",
    RecordKind.SPEED: "SPEED",
    RecordKind.STEPS: "STEPS",
    RecordKind.STEPS_CADENCE: "STEPS",
    RecordKind.TOTAL_CALORIES_BURNED: "TOTAL_CALORIES_BURNED",
    RecordKind.WHEELCHAIR_PUSHES: "WHEELCHAIR_PUSHES",
    RecordKind.CYCLING_PEDALING_CADENCE: "EXERCISE",
    RecordKind.VO2_MAX: "VO2_MAX",
    RecordKind.BASAL_METABOLIC_RATE: "BASAL_METABOLIC_RATE",
    RecordKind.BODY_FAT: "BODY_FAT",
    RecordKind.BODY_WATER_MASS: "BODY_WATER_MASS",
    RecordKind.BONE_MASS: "BONE_MASS",
    RecordKind.HEIGHT: "HEIGHT",
    RecordKind.LEAN_BODY_MASS: "LEAN_BODY_MASS",
    RecordKind.WEIGHT: "WEIGHT",
    RecordKind.BASAL_BODY_TEMPERATURE: "BASAL_BODY_TEMPERATURE",
    RecordKind.BLOOD_GLUCOSE: "BLOOD_GLUCOSE",
    RecordKind.BLOOD_PRESSURE: "BLOOD_PRESSURE",
    RecordKind.BODY_TEMPERATURE: "BODY_TEMPERATURE",
    RecordKind.HEART_RATE: "HEART_RATE",
    RecordKind.HEART_RATE_VARIABILITY_RMSSD: "HEART_RATE_VARIABILITY",
    RecordKind.OXYGEN_SATURATION: "OXYGEN_SATURATION",
    RecordKind.RESPIRATORY_RATE: "RESPIRATORY_RATE",
    RecordKind.RESTING_HEART_RATE: "RESTING_HEART_RATE",
    RecordKind.CERVICAL_MUCUS: "CERVICAL_MUCUS",
    RecordKind.INTERMENSTRUAL_BLEEDING: "INTERMENSTRUAL_BLEEDING",
    RecordKind.MENSTRUATION_FLOW: "MENSTRUATION",
    RecordKind.MENSTRUATION_PERIOD: "MENSTRUATION",
    RecordKind.OVULATION_TEST: "OVULATION_TEST",
    RecordKind.SEXUAL_ACTIVITY: "SEXUAL_ACTIVITY",
    RecordKind.HYDRATION: "HYDRATION",
    RecordKind.NUTRITION: "NUTRITION",
    RecordKind.SLEEP_SESSION: "SLEEP",
}


def capability_for(kind: RecordKind) -> str:
    """Read permission required for ``kind``"""
    return PERMISSION_PREFIX + _PERMISSION_NAMES[kind]


def all_capabilities() -> FrozenSet[str]:
    """Every permission the catalog can ask for"""
    return frozenset(capability_for(kind) for kind in RECORD_KINDS)
