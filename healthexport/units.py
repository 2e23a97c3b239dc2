"""
Quantity value types used by health records.

Every quantity stores its magnitude in a single base unit and exposes the
fixed conversions the export schema relies on. Store documents encode a
quantity either as a bare number (base unit) or as ``{"value": x, "unit": u}``.
"""
from dataclasses import dataclass
from typing import Any, ClassVar, Dict


class UnitError(ValueError):
    """Raised when a quantity is given in a unit its type does not know."""


@dataclass(frozen=True)
class Quantity:
    """Base class for scalar quantities with linear conversions"""

    value: float

    BASE_UNIT: ClassVar[str] = ""
    FACTORS: ClassVar[Dict[str, float]] = {}

    @classmethod
    def of(cls, value: float, unit: str) -> "Quantity":
        """Build a quantity from a value expressed in ``unit``"""
        try:
            factor = cls.FACTORS[unit]
        except KeyError:
            raise UnitError(f"{cls.__name__} does not support unit '{unit}'")
        return cls(float(value) * factor)

    @classmethod
    def parse(cls, raw: Any) -> "Quantity":
        """Parse a store-encoded quantity"""
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, dict):
            return cls.of(raw["value"], raw.get("unit", cls.BASE_UNIT))
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return cls(float(raw))
        raise UnitError(f"Cannot parse {cls.__name__} from {raw!r}")

    def to(self, unit: str) -> float:
        try:
            return self.value / self.FACTORS[unit]
        except KeyError:
            raise UnitError(f"{type(self).__name__} does not support unit '{unit}'")


class Energy(Quantity):
    BASE_UNIT = "kilocalories"
    FACTORS = {
        "kilocalories": 1.0,
        "calories": 0.001,
        "kilojoules": 1 / 4.184,
        "joules": 1 / 4184.0,
    }

    @property
    def in_kilocalories(self) -> float:
        return self.value


class Length(Quantity):
    BASE_UNIT = "meters"
    FACTORS = {
        "meters": 1.0,
        "kilometers": 1000.0,
        "miles": 1609.344,
        "inches": 0.0254,
        "feet": 0.3048,
    }

    @property
    def in_meters(self) -> float:
        return self.value


class Mass(Quantity):
    BASE_UNIT = "grams"
    FACTORS = {
        "grams": 1.0,
        "kilograms": 1000.0,
        "milligrams": 0.001,
        "micrograms": 0.000001,
        "ounces": 28.349523125,
        "pounds": 453.59237,
    }

    @property
    def in_grams(self) -> float:
        return self.value

    @property
    def in_kilograms(self) -> float:
        return self.value / 1000.0


class Volume(Quantity):
    BASE_UNIT = "liters"
    FACTORS = {
        "liters": 1.0,
        "milliliters": 0.001,
        "fluid_ounces_us": 0.0295735295625,
    }

    @property
    def in_liters(self) -> float:
        return self.value


class Power(Quantity):
    BASE_UNIT = "watts"
    FACTORS = {
        "watts": 1.0,
        "kilocalories_per_day": 0.0484259259,
    }

    @property
    def in_watts(self) -> float:
        return self.value

    @property
    def in_kilocalories_per_day(self) -> float:
        return self.to("kilocalories_per_day")


class Velocity(Quantity):
    BASE_UNIT = "meters_per_second"
    FACTORS = {
        "meters_per_second": 1.0,
        "kilometers_per_hour": 1 / 3.6,
        "miles_per_hour": 0.44704,
    }

    @property
    def in_meters_per_second(self) -> float:
        return self.value


class Pressure(Quantity):
    BASE_UNIT = "millimeters_of_mercury"
    FACTORS = {"millimeters_of_mercury": 1.0}

    @property
    def in_millimeters_of_mercury(self) -> float:
        return self.value


class BloodGlucose(Quantity):
    BASE_UNIT = "millimoles_per_liter"
    FACTORS = {
        "millimoles_per_liter": 1.0,
        "milligrams_per_deciliter": 1 / 18.0,
    }

    @property
    def in_millimoles_per_liter(self) -> float:
        return self.value


class Percentage(Quantity):
    BASE_UNIT = "percent"
    FACTORS = {"percent": 1.0}


class Temperature(Quantity):
    """Temperature stored in degrees Celsius; Fahrenheit has an offset."""

    BASE_UNIT = "celsius"
    FACTORS = {"celsius": 1.0}

    @classmethod
    def of(cls, value: float, unit: str) -> "Temperature":
        if unit == "fahrenheit":
            return cls((float(value) - 32.0) * 5.0 / 9.0)
        return super().of(value, unit)

    def to(self, unit: str) -> float:
        if unit == "fahrenheit":
            return self.value * 9.0 / 5.0 + 32.0
        return super().to(unit)

    @property
    def in_celsius(self) -> float:
        return self.value
