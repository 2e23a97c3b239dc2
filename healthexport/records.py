"""
Health record model.

One frozen dataclass per supported record kind, grouped the way the store
groups them (activity, body measurements, vitals, cycle tracking, nutrition,
sleep). Records whose type the model does not know are carried as
UnknownRecord so that a newly introduced store type never breaks a run.

Store documents are snake_case mirrors of these dataclasses; decode_record()
turns one document into its record variant.
"""
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import (Any, ClassVar, Dict, Mapping, Optional, Tuple, Type, Union,
                    get_args, get_origin, get_type_hints)
import inspect

from .exceptions import RecordDecodeError
from .units import (BloodGlucose, Energy, Length, Mass, Percentage, Power,
                    Pressure, Quantity, Temperature, Velocity, Volume)
from .window import parse_instant


class RecordKind(Enum):
    """Supported record kinds; the value is the canonical type name"""

    # Activity
    ACTIVE_CALORIES_BURNED = "ActiveCaloriesBurnedRecord"
    DISTANCE = "DistanceRecord"
    ELEVATION_GAINED = "ElevationGainedRecord"
    EXERCISE_SESSION = "ExerciseSessionRecord"
    FLOORS_CLIMBED = "FloorsClimbedRecord"
    POWER = "PowerRecord"
    SPEED = "SpeedRecord"
    STEPS = "StepsRecord"
    STEPS_CADENCE = "StepsCadenceRecord"
    TOTAL_CALORIES_BURNED = "TotalCaloriesBurnedRecord"
    WHEELCHAIR_PUSHES = "WheelchairPushesRecord"
    CYCLING_PEDALING_CADENCE = "CyclingPedalingCadenceRecord"
    VO2_MAX = "Vo2MaxRecord"

    # Body measurements
    BASAL_METABOLIC_RATE = "BasalMetabolicRateRecord"
    BODY_FAT = "BodyFatRecord"
    BODY_WATER_MASS = "BodyWaterMassRecord"
    BONE_MASS = "BoneMassRecord"
    HEIGHT = "HeightRecord"
    LEAN_BODY_MASS = "LeanBodyMassRecord"
    WEIGHT = "WeightRecord"

    # Vitals
    BASAL_BODY_TEMPERATURE = "BasalBodyTemperatureRecord"
    BLOOD_GLUCOSE = "BloodGlucoseRecord"
    BLOOD_PRESSURE = "BloodPressureRecord"
    BODY_TEMPERATURE = "BodyTemperatureRecord"
    HEART_RATE = "HeartRateRecord"
    HEART_RATE_VARIABILITY_RMSSD = "HeartRateVariabilityRmssdRecord"
    OXYGEN_SATURATION = "OxygenSaturationRecord"
    RESPIRATORY_RATE = "RespiratoryRateRecord"
    RESTING_HEART_RATE = "RestingHeartRateRecord"

    # Cycle tracking
    CERVICAL_MUCUS = "CervicalMucusRecord"
    INTERMENSTRUAL_BLEEDING = "IntermenstrualBleedingRecord"
    MENSTRUATION_FLOW = "MenstruationFlowRecord"
    MENSTRUATION_PERIOD = "MenstruationPeriodRecord"
    OVULATION_TEST = "OvulationTestRecord"
    SEXUAL_ACTIVITY = "SexualActivityRecord"

    # Nutrition
    HYDRATION = "HydrationRecord"
    NUTRITION = "NutritionRecord"

    # Sleep
    SLEEP_SESSION = "SleepSessionRecord"


@dataclass(frozen=True)
class Metadata:
    """Attributes every record carries regardless of kind"""

    id: str
    data_origin: str
    last_modified_time: datetime
    recording_method: int = 0


@dataclass(frozen=True)
class Record:
    """Base class for all record variants"""

    metadata: Metadata

    KIND: ClassVar[Optional[RecordKind]] = None

    @property
    def type_name(self) -> str:
        return self.KIND.value if self.KIND else type(self).__name__


@dataclass(frozen=True)
class InstantRecord(Record):
    time: datetime


@dataclass(frozen=True)
class IntervalRecord(Record):
    start_time: datetime
    end_time: datetime


# Samples and nested segments

@dataclass(frozen=True)
class PowerSample:
    time: datetime
    power: Power


@dataclass(frozen=True)
class SpeedSample:
    time: datetime
    speed: Velocity


@dataclass(frozen=True)
class StepsCadenceSample:
    time: datetime
    rate: float


@dataclass(frozen=True)
class CyclingPedalingCadenceSample:
    time: datetime
    revolutions_per_minute: float


@dataclass(frozen=True)
class HeartRateSample:
    time: datetime
    beats_per_minute: int


@dataclass(frozen=True)
class ExerciseSegment:
    start_time: datetime
    end_time: datetime
    segment_type: int


@dataclass(frozen=True)
class ExerciseLap:
    start_time: datetime
    end_time: datetime
    length: Optional[Length] = None


@dataclass(frozen=True)
class SleepStage:
    start_time: datetime
    end_time: datetime
    stage: int


# Activity

@dataclass(frozen=True)
class ActiveCaloriesBurnedRecord(IntervalRecord):
    energy: Energy
    KIND = RecordKind.ACTIVE_CALORIES_BURNED


@dataclass(frozen=True)
class DistanceRecord(IntervalRecord):
    distance: Length
    KIND = RecordKind.DISTANCE


@dataclass(frozen=True)
class ElevationGainedRecord(IntervalRecord):
    elevation: Length
    KIND = RecordKind.ELEVATION_GAINED


@dataclass(frozen=True)
class ExerciseSessionRecord(IntervalRecord):
    exercise_type: int
    title: Optional[str] = None
    notes: Optional[str] = None
    segments: Tuple[ExerciseSegment, ...] = ()
    laps: Tuple[ExerciseLap, ...] = ()
    KIND = RecordKind.EXERCISE_SESSION


@dataclass(frozen=True)
class FloorsClimbedRecord(IntervalRecord):
    floors: float
    KIND = RecordKind.FLOORS_CLIMBED


@dataclass(frozen=True)
class PowerRecord(IntervalRecord):
    samples: Tuple[PowerSample, ...] = ()
    KIND = RecordKind.POWER


@dataclass(frozen=True)
class SpeedRecord(IntervalRecord):
    samples: Tuple[SpeedSample, ...] = ()
    KIND = RecordKind.SPEED


@dataclass(frozen=True)
class StepsRecord(IntervalRecord):
    count: int
    KIND = RecordKind.STEPS


@dataclass(frozen=True)
class StepsCadenceRecord(IntervalRecord):
    samples: Tuple[StepsCadenceSample, ...] = ()
    KIND = RecordKind.STEPS_CADENCE


@dataclass(frozen=True)
class TotalCaloriesBurnedRecord(IntervalRecord):
    energy: Energy
    KIND = RecordKind.TOTAL_CALORIES_BURNED


@dataclass(frozen=True)
class WheelchairPushesRecord(IntervalRecord):
    count: int
    KIND = RecordKind.WHEELCHAIR_PUSHES


@dataclass(frozen=True)
class CyclingPedalingCadenceRecord(IntervalRecord):
    samples: Tuple[CyclingPedalingCadenceSample, ...] = ()
    KIND = RecordKind.CYCLING_PEDALING_CADENCE


@dataclass(frozen=True)
class Vo2MaxRecord(InstantRecord):
    vo2_milliliters_per_minute_kilogram: float
    measurement_method: int = 0
    KIND = RecordKind.VO2_MAX


# Body measurements

@dataclass(frozen=True)
class BasalMetabolicRateRecord(InstantRecord):
    basal_metabolic_rate: Power
    KIND = RecordKind.BASAL_METABOLIC_RATE


@dataclass(frozen=True)
class BodyFatRecord(InstantRecord):
    percentage: Percentage
    KIND = RecordKind.BODY_FAT


@dataclass(frozen=True)
class BodyWaterMassRecord(InstantRecord):
    mass: Mass
    KIND = RecordKind.BODY_WATER_MASS


@dataclass(frozen=True)
class BoneMassRecord(InstantRecord):
    mass: Mass
    KIND = RecordKind.BONE_MASS


@dataclass(frozen=True)
class HeightRecord(InstantRecord):
    height: Length
    KIND = RecordKind.HEIGHT


@dataclass(frozen=True)
class LeanBodyMassRecord(InstantRecord):
    mass: Mass
    KIND = RecordKind.LEAN_BODY_MASS


@dataclass(frozen=True)
class WeightRecord(InstantRecord):
    weight: Mass
    KIND = RecordKind.WEIGHT


# Vitals

@dataclass(frozen=True)
class BasalBodyTemperatureRecord(InstantRecord):
    temperature: Temperature
    measurement_location: int = 0
    KIND = RecordKind.BASAL_BODY_TEMPERATURE


@dataclass(frozen=True)
class BloodGlucoseRecord(InstantRecord):
    level: BloodGlucose
    specimen_source: int = 0
    meal_type: int = 0
    relation_to_meal: int = 0
    KIND = RecordKind.BLOOD_GLUCOSE


@dataclass(frozen=True)
class BloodPressureRecord(InstantRecord):
    systolic: Pressure
    diastolic: Pressure
    body_position: int = 0
    measurement_location: int = 0
    KIND = RecordKind.BLOOD_PRESSURE


@dataclass(frozen=True)
class BodyTemperatureRecord(InstantRecord):
    temperature: Temperature
    measurement_location: int = 0
    KIND = RecordKind.BODY_TEMPERATURE


@dataclass(frozen=True)
class HeartRateRecord(IntervalRecord):
    samples: Tuple[HeartRateSample, ...] = ()
    KIND = RecordKind.HEART_RATE


@dataclass(frozen=True)
class HeartRateVariabilityRmssdRecord(InstantRecord):
    heart_rate_variability_millis: float
    KIND = RecordKind.HEART_RATE_VARIABILITY_RMSSD


@dataclass(frozen=True)
class OxygenSaturationRecord(InstantRecord):
    percentage: Percentage
    KIND = RecordKind.OXYGEN_SATURATION


@dataclass(frozen=True)
class RespiratoryRateRecord(InstantRecord):
    rate: float
    KIND = RecordKind.RESPIRATORY_RATE


@dataclass(frozen=True)
class RestingHeartRateRecord(InstantRecord):
    beats_per_minute: int
    KIND = RecordKind.RESTING_HEART_RATE


# Cycle tracking

@dataclass(frozen=True)
class CervicalMucusRecord(InstantRecord):
    appearance: int = 0
    sensation: int = 0
    KIND = RecordKind.CERVICAL_MUCUS


@dataclass(frozen=True)
class IntermenstrualBleedingRecord(InstantRecord):
    KIND = RecordKind.INTERMENSTRUAL_BLEEDING


@dataclass(frozen=True)
class MenstruationFlowRecord(InstantRecord):
    flow: int = 0
    KIND = RecordKind.MENSTRUATION_FLOW


@dataclass(frozen=True)
class MenstruationPeriodRecord(IntervalRecord):
    KIND = RecordKind.MENSTRUATION_PERIOD


@dataclass(frozen=True)
class OvulationTestRecord(InstantRecord):
    result: int
    KIND = RecordKind.OVULATION_TEST


@dataclass(frozen=True)
class SexualActivityRecord(InstantRecord):
    protection_used: int = 0
    KIND = RecordKind.SEXUAL_ACTIVITY


# Nutrition

# Order matches the exported key order.
NUTRIENTS = (
    "protein", "totalCarbohydrate", "totalFat", "saturatedFat",
    "unsaturatedFat", "transFat", "cholesterol", "dietaryFiber", "sugar",
    "sodium", "potassium", "calcium", "iron", "vitaminA", "vitaminC",
    "vitaminD", "vitaminE", "vitaminK", "vitaminB6", "vitaminB12", "folate",
    "thiamin", "riboflavin", "niacin", "biotin", "pantothenicAcid",
    "phosphorus", "iodine", "magnesium", "zinc", "selenium", "copper",
    "manganese", "chromium", "molybdenum", "chloride", "caffeine",
)


@dataclass(frozen=True)
class HydrationRecord(IntervalRecord):
    volume: Volume
    KIND = RecordKind.HYDRATION


@dataclass(frozen=True)
class NutritionRecord(IntervalRecord):
    """Meal or food entry; every nutrient is independently optional."""

    name: Optional[str] = None
    meal_type: int = 0
    energy: Optional[Energy] = None
    nutrients: Dict[str, Mass] = field(default_factory=dict)
    KIND = RecordKind.NUTRITION

    def nutrient(self, name: str) -> Optional[Mass]:
        return self.nutrients.get(name)


# Sleep

@dataclass(frozen=True)
class SleepSessionRecord(IntervalRecord):
    title: Optional[str] = None
    notes: Optional[str] = None
    stages: Tuple[SleepStage, ...] = ()
    KIND = RecordKind.SLEEP_SESSION


@dataclass(frozen=True)
class UnknownRecord(Record):
    """Record of a type this exporter does not model"""

    record_type: str = "UnknownRecord"
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def type_name(self) -> str:
        return self.record_type


RECORD_CLASSES: Dict[RecordKind, Type[Record]] = {
    cls.KIND: cls
    for cls in (
        ActiveCaloriesBurnedRecord, DistanceRecord, ElevationGainedRecord,
        ExerciseSessionRecord, FloorsClimbedRecord, PowerRecord, SpeedRecord,
        StepsRecord, StepsCadenceRecord, TotalCaloriesBurnedRecord,
        WheelchairPushesRecord, CyclingPedalingCadenceRecord, Vo2MaxRecord,
        BasalMetabolicRateRecord, BodyFatRecord, BodyWaterMassRecord,
        BoneMassRecord, HeightRecord, LeanBodyMassRecord, WeightRecord,
        BasalBodyTemperatureRecord, BloodGlucoseRecord, BloodPressureRecord,
        BodyTemperatureRecord, HeartRateRecord, HeartRateVariabilityRmssdRecord,
        OxygenSaturationRecord, RespiratoryRateRecord, RestingHeartRateRecord,
        CervicalMucusRecord, IntermenstrualBleedingRecord,
        MenstruationFlowRecord, MenstruationPeriodRecord, OvulationTestRecord,
        SexualActivityRecord, HydrationRecord, NutritionRecord,
        SleepSessionRecord,
    )
}


def record_class_for(kind: RecordKind) -> Type[Record]:
    return RECORD_CLASSES[kind]


# Decoding store documents

def decode_metadata(document: Mapping[str, Any]) -> Metadata:
    try:
        return Metadata(
            id=str(document["id"]),
            data_origin=str(document.get("data_origin", "")),
            last_modified_time=parse_instant(document["last_modified_time"]),
            recording_method=int(document.get("recording_method", 0)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise RecordDecodeError(f"Invalid record metadata: {e}", {"metadata": dict(document)})


def decode_record(document: Mapping[str, Any], kind: Optional[RecordKind] = None) -> Record:
    """
    Decode one store document into its record variant.

    The type is taken from the document's ``type`` field, falling back to
    ``kind``. Unknown types decode to UnknownRecord with the remaining fields
    kept verbatim.

    Raises:
        RecordDecodeError: If the document does not match its record type
    """
    type_name = document.get("type") or (kind.value if kind else None)
    metadata = decode_metadata(document.get("metadata") or {})

    try:
        record_kind = RecordKind(type_name)
    except ValueError:
        return UnknownRecord(
            metadata=metadata,
            record_type=type_name or "UnknownRecord",
            raw={k: v for k, v in document.items() if k not in ("type", "metadata")},
        )

    try:
        return _build(RECORD_CLASSES[record_kind], document, metadata=metadata)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise RecordDecodeError(
            f"Cannot decode {type_name}: {e}",
            {"id": metadata.id, "type": type_name},
        )


@lru_cache(maxsize=None)
def _field_types(cls: type) -> Dict[str, Any]:
    return get_type_hints(cls)


def _build(cls: type, document: Mapping[str, Any], **preset: Any) -> Any:
    hints = _field_types(cls)
    kwargs = dict(preset)
    for f in fields(cls):
        if f.name in kwargs:
            continue
        if f.name not in document:
            if f.default is MISSING and f.default_factory is MISSING:
                raise KeyError(f.name)
            continue
        kwargs[f.name] = _convert(hints[f.name], document[f.name])
    return cls(**kwargs)


def _convert(hint: Any, raw: Any) -> Any:
    origin = get_origin(hint)

    if origin is Union:
        if raw is None:
            return None
        hint = next(arg for arg in get_args(hint) if arg is not type(None))
        origin = get_origin(hint)

    if hint is datetime:
        return parse_instant(raw)
    if origin is tuple:
        item_type = get_args(hint)[0]
        return tuple(_convert(item_type, item) for item in raw)
    if origin is dict:
        value_type = get_args(hint)[1]
        return {key: _convert(value_type, value) for key, value in raw.items()}
    if inspect.isclass(hint) and issubclass(hint, Quantity):
        return hint.parse(raw)
    if is_dataclass(hint):
        return _build(hint, raw)
    return raw
