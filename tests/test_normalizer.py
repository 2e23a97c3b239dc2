"""
Tests for record normalization.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest

from healthexport.normalizer import normalize, normalize_all, normalize_metadata
from healthexport.records import (
    NUTRIENTS,
    ActiveCaloriesBurnedRecord, BasalBodyTemperatureRecord,
    BasalMetabolicRateRecord, BloodGlucoseRecord, BloodPressureRecord,
    BodyFatRecord, BodyTemperatureRecord, BodyWaterMassRecord, BoneMassRecord,
    CervicalMucusRecord, CyclingPedalingCadenceRecord,
    CyclingPedalingCadenceSample, DistanceRecord, ElevationGainedRecord,
    ExerciseLap, ExerciseSegment, ExerciseSessionRecord, FloorsClimbedRecord,
    HeartRateVariabilityRmssdRecord, HeightRecord, HydrationRecord,
    IntermenstrualBleedingRecord, LeanBodyMassRecord, MenstruationFlowRecord,
    MenstruationPeriodRecord, NutritionRecord, OvulationTestRecord,
    OxygenSaturationRecord, PowerRecord, PowerSample, RecordKind,
    RespiratoryRateRecord, RestingHeartRateRecord, SexualActivityRecord,
    SleepSessionRecord, SleepStage, SpeedRecord, SpeedSample,
    StepsCadenceRecord, StepsCadenceSample, StepsRecord,
    TotalCaloriesBurnedRecord, UnknownRecord, Vo2MaxRecord, WeightRecord,
    WheelchairPushesRecord,
)
from healthexport.units import (
    BloodGlucose, Energy, Length, Mass, Percentage, Power, Pressure,
    Temperature, Velocity, Volume,
)

T0 = datetime(2024, 3, 5, 8, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(minutes=30)
INTERVAL_KEYS = {"type", "metadata", "startTime", "endTime"}
INSTANT_KEYS = {"type", "metadata", "time"}


@pytest.fixture
def records(make_metadata):
    """One populated record per supported kind."""
    m = make_metadata()
    span = {"metadata": m, "start_time": T0, "end_time": T1}
    at = {"metadata": m, "time": T0}
    return {
        RecordKind.ACTIVE_CALORIES_BURNED: ActiveCaloriesBurnedRecord(**span, energy=Energy(120.5)),
        RecordKind.DISTANCE: DistanceRecord(**span, distance=Length.of(5, "kilometers")),
        RecordKind.ELEVATION_GAINED: ElevationGainedRecord(**span, elevation=Length(42.0)),
        RecordKind.EXERCISE_SESSION: ExerciseSessionRecord(
            **span, exercise_type=56, title="Morning run", notes=None,
            segments=(ExerciseSegment(T0, T1, 7),),
            laps=(ExerciseLap(T0, T0 + timedelta(minutes=15), Length(2500.0)), ExerciseLap(T0, T1)),
        ),
        RecordKind.FLOORS_CLIMBED: FloorsClimbedRecord(**span, floors=4.0),
        RecordKind.POWER: PowerRecord(**span, samples=(PowerSample(T0, Power(210.0)),)),
        RecordKind.SPEED: SpeedRecord(**span, samples=(SpeedSample(T0, Velocity(3.2)),)),
        RecordKind.STEPS: StepsRecord(**span, count=4200),
        RecordKind.STEPS_CADENCE: StepsCadenceRecord(**span, samples=(StepsCadenceSample(T0, 162.0),)),
        RecordKind.TOTAL_CALORIES_BURNED: TotalCaloriesBurnedRecord(**span, energy=Energy(2100.0)),
        RecordKind.WHEELCHAIR_PUSHES: WheelchairPushesRecord(**span, count=300),
        RecordKind.CYCLING_PEDALING_CADENCE: CyclingPedalingCadenceRecord(
            **span, samples=(CyclingPedalingCadenceSample(T0, 88.0),)),
        RecordKind.VO2_MAX: Vo2MaxRecord(**at, vo2_milliliters_per_minute_kilogram=48.5, measurement_method=1),
        RecordKind.BASAL_METABOLIC_RATE: BasalMetabolicRateRecord(
            **at, basal_metabolic_rate=Power.of(1600, "kilocalories_per_day")),
        RecordKind.BODY_FAT: BodyFatRecord(**at, percentage=Percentage(18.5)),
        RecordKind.BODY_WATER_MASS: BodyWaterMassRecord(**at, mass=Mass.of(40, "kilograms")),
        RecordKind.BONE_MASS: BoneMassRecord(**at, mass=Mass.of(3, "kilograms")),
        RecordKind.HEIGHT: HeightRecord(**at, height=Length(1.8)),
        RecordKind.LEAN_BODY_MASS: LeanBodyMassRecord(**at, mass=Mass.of(60, "kilograms")),
        RecordKind.WEIGHT: WeightRecord(**at, weight=Mass(72500.0)),
        RecordKind.BASAL_BODY_TEMPERATURE: BasalBodyTemperatureRecord(
            **at, temperature=Temperature(36.4), measurement_location=3),
        RecordKind.BLOOD_GLUCOSE: BloodGlucoseRecord(
            **at, level=BloodGlucose(5.4), specimen_source=1, meal_type=2, relation_to_meal=3),
        RecordKind.BLOOD_PRESSURE: BloodPressureRecord(
            **at, systolic=Pressure(120.0), diastolic=Pressure(80.0), body_position=1, measurement_location=2),
        RecordKind.BODY_TEMPERATURE: BodyTemperatureRecord(**at, temperature=Temperature(36.9)),
        RecordKind.HEART_RATE_VARIABILITY_RMSSD: HeartRateVariabilityRmssdRecord(
            **at, heart_rate_variability_millis=42.0),
        RecordKind.OXYGEN_SATURATION: OxygenSaturationRecord(**at, percentage=Percentage(97.0)),
        RecordKind.RESPIRATORY_RATE: RespiratoryRateRecord(**at, rate=14.0),
        RecordKind.RESTING_HEART_RATE: RestingHeartRateRecord(**at, beats_per_minute=52),
        RecordKind.CERVICAL_MUCUS: CervicalMucusRecord(**at, appearance=2, sensation=1),
        RecordKind.INTERMENSTRUAL_BLEEDING: IntermenstrualBleedingRecord(**at),
        RecordKind.MENSTRUATION_FLOW: MenstruationFlowRecord(**at, flow=2),
        RecordKind.MENSTRUATION_PERIOD: MenstruationPeriodRecord(**span),
        RecordKind.OVULATION_TEST: OvulationTestRecord(**at, result=1),
        RecordKind.SEXUAL_ACTIVITY: SexualActivityRecord(**at, protection_used=1),
        RecordKind.HYDRATION: HydrationRecord(**span, volume=Volume.of(500, "milliliters")),
        RecordKind.NUTRITION: NutritionRecord(
            **span, name="Oatmeal", meal_type=1, energy=Energy(350.0),
            nutrients={"protein": Mass(12.0), "sodium": Mass.of(150, "milligrams")},
        ),
        RecordKind.SLEEP_SESSION: SleepSessionRecord(
            **span, title=None, notes="restless",
            stages=(SleepStage(T0, T0 + timedelta(minutes=10), 4), SleepStage(T0 + timedelta(minutes=10), T1, 5)),
        ),
    }


EXPECTED_KEYS = {
    RecordKind.ACTIVE_CALORIES_BURNED: INTERVAL_KEYS | {"energy_kcal"},
    RecordKind.DISTANCE: INTERVAL_KEYS | {"distance_meters"},
    RecordKind.ELEVATION_GAINED: INTERVAL_KEYS | {"elevation_meters"},
    RecordKind.EXERCISE_SESSION: INTERVAL_KEYS | {"exerciseType", "title", "notes", "segments", "laps"},
    RecordKind.FLOORS_CLIMBED: INTERVAL_KEYS | {"floors"},
    RecordKind.POWER: INTERVAL_KEYS | {"samples"},
    RecordKind.SPEED: INTERVAL_KEYS | {"samples"},
    RecordKind.STEPS: INTERVAL_KEYS | {"count"},
    RecordKind.STEPS_CADENCE: INTERVAL_KEYS | {"samples"},
    RecordKind.TOTAL_CALORIES_BURNED: INTERVAL_KEYS | {"energy_kcal"},
    RecordKind.WHEELCHAIR_PUSHES: INTERVAL_KEYS | {"count"},
    RecordKind.CYCLING_PEDALING_CADENCE: INTERVAL_KEYS | {"samples"},
    RecordKind.VO2_MAX: INSTANT_KEYS | {"vo2MillilitersPerMinuteKilogram", "measurementMethod"},
    RecordKind.BASAL_METABOLIC_RATE: INSTANT_KEYS | {"basalMetabolicRate_kcalPerDay"},
    RecordKind.BODY_FAT: INSTANT_KEYS | {"percentage"},
    RecordKind.BODY_WATER_MASS: INSTANT_KEYS | {"mass_kg"},
    RecordKind.BONE_MASS: INSTANT_KEYS | {"mass_kg"},
    RecordKind.HEIGHT: INSTANT_KEYS | {"height_meters"},
    RecordKind.LEAN_BODY_MASS: INSTANT_KEYS | {"mass_kg"},
    RecordKind.WEIGHT: INSTANT_KEYS | {"weight_kg"},
    RecordKind.BASAL_BODY_TEMPERATURE: INSTANT_KEYS | {"temperature_celsius", "measurementLocation"},
    RecordKind.BLOOD_GLUCOSE: INSTANT_KEYS | {"level_mmolPerL", "specimenSource", "mealType", "relationToMeal"},
    RecordKind.BLOOD_PRESSURE: INSTANT_KEYS | {"systolic_mmHg", "diastolic_mmHg", "bodyPosition",
                                               "measurementLocation"},
    RecordKind.BODY_TEMPERATURE: INSTANT_KEYS | {"temperature_celsius", "measurementLocation"},
    RecordKind.HEART_RATE: INTERVAL_KEYS | {"samples"},
    RecordKind.HEART_RATE_VARIABILITY_RMSSD: INSTANT_KEYS | {"heartRateVariabilityMillis"},
    RecordKind.OXYGEN_SATURATION: INSTANT_KEYS | {"percentage"},
    RecordKind.RESPIRATORY_RATE: INSTANT_KEYS | {"rate_breathsPerMinute"},
    RecordKind.RESTING_HEART_RATE: INSTANT_KEYS | {"beatsPerMinute"},
    RecordKind.CERVICAL_MUCUS: INSTANT_KEYS | {"appearance", "sensation"},
    RecordKind.INTERMENSTRUAL_BLEEDING: INSTANT_KEYS,
    RecordKind.MENSTRUATION_FLOW: INSTANT_KEYS | {"flow"},
    RecordKind.MENSTRUATION_PERIOD: INTERVAL_KEYS,
    RecordKind.OVULATION_TEST: INSTANT_KEYS | {"result"},
    RecordKind.SEXUAL_ACTIVITY: INSTANT_KEYS | {"protectionUsed"},
    RecordKind.HYDRATION: INTERVAL_KEYS | {"volume_liters"},
    RecordKind.NUTRITION: INTERVAL_KEYS | {"name", "mealType", "energy_kcal"}
                          | {f"{nutrient}_grams" for nutrient in NUTRIENTS},
    RecordKind.SLEEP_SESSION: INTERVAL_KEYS | {"title", "notes", "stages"},
}


class TestKeySets:
    """Test the fixed output schema per kind."""

    @pytest.mark.parametrize("kind", [k for k in RecordKind if k is not RecordKind.HEART_RATE])
    def test_schema(self, records, kind):
        output = normalize(records[kind])
        assert set(output) == EXPECTED_KEYS[kind]
        assert output["type"] == kind.value
        assert "rawData" not in output

    def test_heart_rate_schema(self, heart_rate_record):
        output = normalize(heart_rate_record)
        assert set(output) == EXPECTED_KEYS[RecordKind.HEART_RATE]
        assert output["samples"] == [
            {"time": "2024-03-06T07:00:00Z", "beatsPerMinute": 61},
            {"time": "2024-03-06T07:01:00Z", "beatsPerMinute": 64},
        ]

    def test_expected_keys_cover_every_kind(self):
        assert set(EXPECTED_KEYS) == set(RecordKind)

    def test_nutrition_has_thirty_eight_nutrient_keys(self, records):
        output = normalize(records[RecordKind.NUTRITION])
        nutrient_keys = [key for key in output if key.endswith("_grams") or key == "energy_kcal"]
        assert len(nutrient_keys) == 38


class TestValues:
    """Test unit conversion and field values."""

    def test_metadata(self, records):
        assert normalize(records[RecordKind.STEPS])["metadata"] == {
            "id": "rec-1",
            "dataOrigin": "com.example.tracker",
            "lastModifiedTime": "2024-03-10T08:00:00Z",
            "recordingMethod": 1,
        }

    def test_interval_instants(self, records):
        output = normalize(records[RecordKind.STEPS])
        assert output["startTime"] == "2024-03-05T08:00:00Z"
        assert output["endTime"] == "2024-03-05T08:30:00Z"
        assert output["count"] == 4200

    def test_distance_in_meters(self, records):
        assert normalize(records[RecordKind.DISTANCE])["distance_meters"] == pytest.approx(5000.0)

    def test_weight_in_kilograms(self, records):
        assert normalize(records[RecordKind.WEIGHT])["weight_kg"] == pytest.approx(72.5)

    def test_mass_in_kilograms(self, records):
        assert normalize(records[RecordKind.BONE_MASS])["mass_kg"] == pytest.approx(3.0)

    def test_hydration_in_liters(self, records):
        assert normalize(records[RecordKind.HYDRATION])["volume_liters"] == pytest.approx(0.5)

    def test_basal_metabolic_rate(self, records):
        output = normalize(records[RecordKind.BASAL_METABOLIC_RATE])
        assert output["basalMetabolicRate_kcalPerDay"] == pytest.approx(1600.0)

    def test_blood_pressure(self, records):
        output = normalize(records[RecordKind.BLOOD_PRESSURE])
        assert output["systolic_mmHg"] == 120.0
        assert output["diastolic_mmHg"] == 80.0
        assert output["bodyPosition"] == 1
        assert output["measurementLocation"] == 2

    def test_body_temperature_default_location(self, records):
        assert normalize(records[RecordKind.BODY_TEMPERATURE])["measurementLocation"] == 0

    def test_exercise_session_nested(self, records):
        output = normalize(records[RecordKind.EXERCISE_SESSION])
        assert output["exerciseType"] == 56
        assert output["title"] == "Morning run"
        assert output["notes"] is None
        assert output["segments"] == [
            {"startTime": "2024-03-05T08:00:00Z", "endTime": "2024-03-05T08:30:00Z", "segmentType": 7},
        ]
        assert output["laps"][0]["length_meters"] == 2500.0
        assert output["laps"][1]["length_meters"] is None

    def test_sleep_stages_keep_order(self, records):
        stages = normalize(records[RecordKind.SLEEP_SESSION])["stages"]
        assert [stage["stage"] for stage in stages] == [4, 5]
        assert stages[0]["endTime"] == stages[1]["startTime"]

    def test_sample_values(self, records):
        assert normalize(records[RecordKind.POWER])["samples"] == [
            {"time": "2024-03-05T08:00:00Z", "power_watts": 210.0},
        ]
        assert normalize(records[RecordKind.SPEED])["samples"][0]["speed_metersPerSecond"] == 3.2
        assert normalize(records[RecordKind.STEPS_CADENCE])["samples"][0]["rate_stepsPerMinute"] == 162.0
        assert normalize(records[RecordKind.CYCLING_PEDALING_CADENCE])["samples"][0]["revolutionsPerMinute"] == 88.0


class TestNutrition:
    """Test optional nutrient handling."""

    def test_present_nutrients_in_grams(self, records):
        output = normalize(records[RecordKind.NUTRITION])
        assert output["name"] == "Oatmeal"
        assert output["energy_kcal"] == 350.0
        assert output["protein_grams"] == 12.0
        assert output["sodium_grams"] == pytest.approx(0.15)

    def test_absent_nutrients_are_explicit_none(self, records):
        output = normalize(records[RecordKind.NUTRITION])
        assert "caffeine_grams" in output
        assert output["caffeine_grams"] is None
        assert output["vitaminB12_grams"] is None

    def test_empty_meal(self, make_metadata):
        record = NutritionRecord(metadata=make_metadata(), start_time=T0, end_time=T1)
        output = normalize(record)
        assert output["name"] is None
        assert output["energy_kcal"] is None
        assert all(output[f"{nutrient}_grams"] is None for nutrient in NUTRIENTS)

    def test_nulls_survive_serialization(self, make_metadata):
        record = NutritionRecord(metadata=make_metadata(), start_time=T0, end_time=T1)
        body = json.dumps(normalize(record))
        assert '"iron_grams": null' in body


class TestFallback:
    """Test records without a normalization rule."""

    def test_unknown_record(self, make_metadata):
        record = UnknownRecord(metadata=make_metadata(), record_type="SkinTemperatureRecord",
                               raw={"delta": 0.3})
        output = normalize(record)
        assert output["type"] == "SkinTemperatureRecord"
        assert output["metadata"]["id"] == "rec-1"
        assert output["rawData"] == repr(record)

    def test_foreign_object(self):
        @dataclass
        class Mystery:
            value: int

        mystery = Mystery(3)
        output = normalize(mystery)
        assert output == {"type": "Mystery", "metadata": None, "rawData": repr(mystery)}
        assert output["rawData"].endswith("Mystery(value=3)")

    def test_broken_record_degrades_to_raw(self, make_metadata):
        # Wrong value type makes the rule fail
        record = StepsRecord(metadata=make_metadata(), start_time="yesterday", end_time=T1, count=1)
        output = normalize(record)
        assert output["type"] == "StepsRecord"
        assert output["rawData"] == repr(record)
        assert "count" not in output


class TestProperties:
    """Test purity and idempotence."""

    def test_idempotent(self, records):
        for record in records.values():
            assert normalize(record) == normalize(record)

    def test_normalize_all_keeps_order(self, make_steps):
        steps = make_steps(3)
        output = normalize_all(steps)
        assert [item["metadata"]["id"] for item in output] == ["steps-0", "steps-1", "steps-2"]

    def test_normalize_metadata(self, make_metadata):
        assert normalize_metadata(make_metadata("abc"))["id"] == "abc"

    def test_output_is_json_serializable(self, records):
        json.dumps([normalize(record) for record in records.values()])
