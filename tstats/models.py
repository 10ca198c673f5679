"""Pydantic models for the geolocation and forecast payloads."""

from pydantic import BaseModel, ConfigDict, Field

GEO_STATUS_SUCCESS = "success"

# WMO weather interpretation codes as documented by Open-Meteo.
WMO_DESCRIPTIONS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


def describe_weather_code(code: int | None) -> str:
    """Return a human-readable label for a WMO weather code."""
    if code is None:
        return "Unknown"
    return WMO_DESCRIPTIONS.get(code, f"Unknown (code {code})")


class GeolocationRecord(BaseModel):
    """ip-api.com lookup result for a single address."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    status: str
    country: str = ""
    city: str = ""
    latitude: float = Field(0.0, alias="lat")
    longitude: float = Field(0.0, alias="lon")
    isp: str = ""
    query: str = ""
    message: str | None = None  # only present on failures

    @property
    def ok(self) -> bool:
        return self.status == GEO_STATUS_SUCCESS


class CurrentUnits(BaseModel):
    """Unit labels Open-Meteo attaches to the `current` block."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    time: str = "iso8601"
    interval: str | None = None
    temperature_2m: str = "°C"
    weather_code: str = "wmo code"


class CurrentObservation(BaseModel):
    """The `current` block of an Open-Meteo forecast response."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    time: str
    interval: int | None = None
    temperature_2m: float
    weather_code: int


class WeatherRecord(BaseModel):
    """Current conditions for one coordinate pair."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    latitude: float
    longitude: float
    generationtime_ms: float | None = None
    utc_offset_seconds: int | None = None
    timezone: str | None = None
    timezone_abbreviation: str | None = None
    elevation: float | None = None
    current_units: CurrentUnits = CurrentUnits()
    current: CurrentObservation

    @property
    def temperature(self) -> float:
        return self.current.temperature_2m

    @property
    def temperature_unit(self) -> str:
        return self.current_units.temperature_2m

    @property
    def weather_code(self) -> int:
        return self.current.weather_code

    @property
    def description(self) -> str:
        return describe_weather_code(self.current.weather_code)
