"""
Record normalization.

Maps each record variant to a flat dict with a fixed key set per kind. Units
are converted to the suffix named in the key (``distance_meters``,
``energy_kcal``, ...). Optional source values become explicit ``None`` so the
key set never varies between records of the same kind.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Type

from .records import (
    NUTRIENTS,
    ActiveCaloriesBurnedRecord, BasalBodyTemperatureRecord,
    BasalMetabolicRateRecord, BloodGlucoseRecord, BloodPressureRecord,
    BodyFatRecord, BodyTemperatureRecord, BodyWaterMassRecord, BoneMassRecord,
    CervicalMucusRecord, CyclingPedalingCadenceRecord, DistanceRecord,
    ElevationGainedRecord, ExerciseSessionRecord, FloorsClimbedRecord,
    HeartRateRecord, HeartRateVariabilityRmssdRecord, HeightRecord,
    HydrationRecord, IntermenstrualBleedingRecord, IntervalRecord,
    LeanBodyMassRecord, MenstruationFlowRecord, MenstruationPeriodRecord,
    Metadata, NutritionRecord, OvulationTestRecord, OxygenSaturationRecord,
    PowerRecord, Record, RespiratoryRateRecord, RestingHeartRateRecord,
    SexualActivityRecord, SleepSessionRecord, SpeedRecord, StepsCadenceRecord,
    StepsRecord, TotalCaloriesBurnedRecord, Vo2MaxRecord,
    WeightRecord, WheelchairPushesRecord,
)
from .window import format_instant


logger = logging.getLogger(__name__)

NormalizedRecord = Dict[str, Any]


def normalize_metadata(metadata: Metadata) -> Dict[str, Any]:
    return {
        "id": metadata.id,
        "dataOrigin": metadata.data_origin,
        "lastModifiedTime": format_instant(metadata.last_modified_time),
        "recordingMethod": metadata.recording_method,
    }


def _interval(record: IntervalRecord) -> NormalizedRecord:
    return {
        "startTime": format_instant(record.start_time),
        "endTime": format_instant(record.end_time),
    }


def _instant(record) -> NormalizedRecord:
    return {"time": format_instant(record.time)}


def _samples(record, value_key: str, value_of: Callable[[Any], Any]) -> NormalizedRecord:
    fields = _interval(record)
    fields["samples"] = [
        {"time": format_instant(sample.time), value_key: value_of(sample)}
        for sample in record.samples
    ]
    return fields


# Activity

def _active_calories(record: ActiveCaloriesBurnedRecord) -> NormalizedRecord:
    return {**_interval(record), "energy_kcal": record.energy.in_kilocalories}


def _distance(record: DistanceRecord) -> NormalizedRecord:
    return {**_interval(record), "distance_meters": record.distance.in_meters}


def _elevation(record: ElevationGainedRecord) -> NormalizedRecord:
    return {**_interval(record), "elevation_meters": record.elevation.in_meters}


def _exercise_session(record: ExerciseSessionRecord) -> NormalizedRecord:
    return {
        **_interval(record),
        "exerciseType": record.exercise_type,
        "title": record.title,
        "notes": record.notes,
        "segments": [
            {
                "startTime": format_instant(segment.start_time),
                "endTime": format_instant(segment.end_time),
                "segmentType": segment.segment_type,
            }
            for segment in record.segments
        ],
        "laps": [
            {
                "startTime": format_instant(lap.start_time),
                "endTime": format_instant(lap.end_time),
                "length_meters": lap.length.in_meters if lap.length is not None else None,
            }
            for lap in record.laps
        ],
    }


def _floors(record: FloorsClimbedRecord) -> NormalizedRecord:
    return {**_interval(record), "floors": record.floors}


def _power(record: PowerRecord) -> NormalizedRecord:
    return _samples(record, "power_watts", lambda s: s.power.in_watts)


def _speed(record: SpeedRecord) -> NormalizedRecord:
    return _samples(record, "speed_metersPerSecond", lambda s: s.speed.in_meters_per_second)


def _steps(record: StepsRecord) -> NormalizedRecord:
    return {**_interval(record), "count": record.count}


def _steps_cadence(record: StepsCadenceRecord) -> NormalizedRecord:
    return _samples(record, "rate_stepsPerMinute", lambda s: s.rate)


def _total_calories(record: TotalCaloriesBurnedRecord) -> NormalizedRecord:
    return {**_interval(record), "energy_kcal": record.energy.in_kilocalories}


def _wheelchair_pushes(record: WheelchairPushesRecord) -> NormalizedRecord:
    return {**_interval(record), "count": record.count}


def _pedaling_cadence(record: CyclingPedalingCadenceRecord) -> NormalizedRecord:
    return _samples(record, "revolutionsPerMinute", lambda s: s.revolutions_per_minute)


def _vo2_max(record: Vo2MaxRecord) -> NormalizedRecord:
    return {
        **_instant(record),
        "vo2MillilitersPerMinuteKilogram": record.vo2_milliliters_per_minute_kilogram,
        "measurementMethod": record.measurement_method,
    }


# Body measurements

def _basal_metabolic_rate(record: BasalMetabolicRateRecord) -> NormalizedRecord:
    return {
        **_instant(record),
        "basalMetabolicRate_kcalPerDay": record.basal_metabolic_rate.in_kilocalories_per_day,
    }


def _percentage(record) -> NormalizedRecord:
    return {**_instant(record), "percentage": record.percentage.value}


def _mass(record) -> NormalizedRecord:
    return {**_instant(record), "mass_kg": record.mass.in_kilograms}


def _height(record: HeightRecord) -> NormalizedRecord:
    return {**_instant(record), "height_meters": record.height.in_meters}


def _weight(record: WeightRecord) -> NormalizedRecord:
    return {**_instant(record), "weight_kg": record.weight.in_kilograms}


# Vitals

def _temperature(record) -> NormalizedRecord:
    return {
        **_instant(record),
        "temperature_celsius": record.temperature.in_celsius,
        "measurementLocation": record.measurement_location,
    }


def _blood_glucose(record: BloodGlucoseRecord) -> NormalizedRecord:
    return {
        **_instant(record),
        "level_mmolPerL": record.level.in_millimoles_per_liter,
        "specimenSource": record.specimen_source,
        "mealType": record.meal_type,
        "relationToMeal": record.relation_to_meal,
    }


def _blood_pressure(record: BloodPressureRecord) -> NormalizedRecord:
    return {
        **_instant(record),
        "systolic_mmHg": record.systolic.in_millimeters_of_mercury,
        "diastolic_mmHg": record.diastolic.in_millimeters_of_mercury,
        "bodyPosition": record.body_position,
        "measurementLocation": record.measurement_location,
    }


def _heart_rate(record: HeartRateRecord) -> NormalizedRecord:
    return _samples(record, "beatsPerMinute", lambda s: s.beats_per_minute)


def _heart_rate_variability(record: HeartRateVariabilityRmssdRecord) -> NormalizedRecord:
    return {**_instant(record), "heartRateVariabilityMillis": record.heart_rate_variability_millis}


def _respiratory_rate(record: RespiratoryRateRecord) -> NormalizedRecord:
    return {**_instant(record), "rate_breathsPerMinute": record.rate}


def _resting_heart_rate(record: RestingHeartRateRecord) -> NormalizedRecord:
    return {**_instant(record), "beatsPerMinute": record.beats_per_minute}


# Cycle tracking

def _cervical_mucus(record: CervicalMucusRecord) -> NormalizedRecord:
    return {**_instant(record), "appearance": record.appearance, "sensation": record.sensation}


def _intermenstrual_bleeding(record: IntermenstrualBleedingRecord) -> NormalizedRecord:
    return _instant(record)


def _menstruation_flow(record: MenstruationFlowRecord) -> NormalizedRecord:
    return {**_instant(record), "flow": record.flow}


def _menstruation_period(record: MenstruationPeriodRecord) -> NormalizedRecord:
    return _interval(record)


def _ovulation_test(record: OvulationTestRecord) -> NormalizedRecord:
    return {**_instant(record), "result": record.result}


def _sexual_activity(record: SexualActivityRecord) -> NormalizedRecord:
    return {**_instant(record), "protectionUsed": record.protection_used}


# Nutrition

def _hydration(record: HydrationRecord) -> NormalizedRecord:
    return {**_interval(record), "volume_liters": record.volume.in_liters}


def _nutrition(record: NutritionRecord) -> NormalizedRecord:
    fields = {
        **_interval(record),
        "name": record.name,
        "mealType": record.meal_type,
        "energy_kcal": record.energy.in_kilocalories if record.energy is not None else None,
    }
    for nutrient in NUTRIENTS:
        mass = record.nutrient(nutrient)
        fields[f"{nutrient}_grams"] = mass.in_grams if mass is not None else None
    return fields


# Sleep

def _sleep_session(record: SleepSessionRecord) -> NormalizedRecord:
    return {
        **_interval(record),
        "title": record.title,
        "notes": record.notes,
        "stages": [
            {
                "startTime": format_instant(stage.start_time),
                "endTime": format_instant(stage.end_time),
                "stage": stage.stage,
            }
            for stage in record.stages
        ],
    }


_NORMALIZERS: Dict[Type[Record], Callable[[Any], NormalizedRecord]] = {
    ActiveCaloriesBurnedRecord: _active_calories,
    DistanceRecord: _distance,
    ElevationGainedRecord: _elevation,
    ExerciseSessionRecord: _exercise_session,
    FloorsClimbedRecord: _floors,
    PowerRecord: _power,
    SpeedRecord: _speed,
    StepsRecord: _steps,
    StepsCadenceRecord: _steps_cadence,
    TotalCaloriesBurnedRecord: _total_calories,
    WheelchairPushesRecord: _wheelchair_pushes,
    CyclingPedalingCadenceRecord: _pedaling_cadence,
    Vo2MaxRecord: _vo2_max,
    BasalMetabolicRateRecord: _basal_metabolic_rate,
    BodyFatRecord: _percentage,
    BodyWaterMassRecord: _mass,
    BoneMassRecord: _mass,
    HeightRecord: _height,
    LeanBodyMassRecord: _mass,
    WeightRecord: _weight,
    BasalBodyTemperatureRecord: _temperature,
    BloodGlucoseRecord: _blood_glucose,
    BloodPressureRecord: _blood_pressure,
    BodyTemperatureRecord: _temperature,
    HeartRateRecord: _heart_rate,
    HeartRateVariabilityRmssdRecord: _heart_rate_variability,
    OxygenSaturationRecord: _percentage,
    RespiratoryRateRecord: _respiratory_rate,
    RestingHeartRateRecord: _resting_heart_rate,
    CervicalMucusRecord: _cervical_mucus,
    IntermenstrualBleedingRecord: _intermenstrual_bleeding,
    MenstruationFlowRecord: _menstruation_flow,
    MenstruationPeriodRecord: _menstruation_period,
    OvulationTestRecord: _ovulation_test,
    SexualActivityRecord: _sexual_activity,
    HydrationRecord: _hydration,
    NutritionRecord: _nutrition,
    SleepSessionRecord: _sleep_session,
}


def _metadata_or_none(record: Any) -> Optional[Dict[str, Any]]:
    metadata = getattr(record, "metadata", None)
    if not isinstance(metadata, Metadata):
        return None
    try:
        return normalize_metadata(metadata)
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(f"⚠️ Invalid metadata on {type(record).__name__}: {e}")
        return None


def normalize(record: Any) -> NormalizedRecord:
    """
    Normalize one record into its export representation.

    Never raises: records without a rule, and records a rule cannot handle,
    are exported with a ``rawData`` rendering instead.
    """
    base = {
        "type": getattr(record, "type_name", type(record).__name__),
        "metadata": _metadata_or_none(record),
    }

    rule = _NORMALIZERS.get(type(record))
    if rule is not None:
        try:
            base.update(rule(record))
            return base
        except Exception as e:
            logger.warning(f"⚠️ Could not normalize {base['type']} {base['metadata']}: {e}")

    base["rawData"] = repr(record)
    return base


def normalize_all(records: List[Any]) -> List[NormalizedRecord]:
    return [normalize(record) for record in records]
