"""Current weather and today's forecast via Open-Meteo (no API key)."""

from typing import Any

import httpx

from ..types import ErrorInfo, ToolResult
from .base import BaseTool
from .geo import geocode

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

CURRENT_FIELDS = (
    "temperature_2m,relative_humidity_2m,apparent_temperature,is_day,"
    "precipitation,weather_code,wind_speed_10m"
)
DAILY_FIELDS = "weather_code,temperature_2m_max,temperature_2m_min,sunrise,sunset,uv_index_max"

# WMO weather interpretation codes
WEATHER_CODES = {
    0: "Clear sky",
    1: "Mainly clear", 2: "Partly cloudy", 3: "Overcast",
    45: "Fog", 48: "Depositing rime fog",
    51: "Light drizzle", 53: "Moderate drizzle", 55: "Dense drizzle",
    56: "Light freezing drizzle", 57: "Dense freezing drizzle",
    61: "Slight rain", 63: "Moderate rain", 65: "Heavy rain",
    66: "Light freezing rain", 67: "Heavy freezing rain",
    71: "Slight snow fall", 73: "Moderate snow fall", 75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers", 81: "Moderate rain showers", 82: "Violent rain showers",
    85: "Slight snow showers", 86: "Heavy snow showers",
    95: "Thunderstorm", 96: "Thunderstorm with slight hail", 99: "Thunderstorm with heavy hail",
}


def describe_weather_code(code: int | None) -> str:
    return WEATHER_CODES.get(code, "Unknown conditions")


def _clock_time(iso_timestamp: str) -> str:
    return iso_timestamp.split("T", 1)[-1]


class WeatherTool(BaseTool):
    """Weather for a named place or explicit coordinates."""

    def __init__(
        self,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "get_weather"

    @property
    def description(self) -> str:
        return (
            "Get current weather and today's forecast for a location. "
            "Give a city name, or latitude and longitude."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "location": {
                    "type": "string",
                    "description": 'City and country, e.g. "London, UK" or "Tokyo".',
                },
                "latitude": {
                    "type": "number",
                    "description": "Latitude of the location (optional).",
                },
                "longitude": {
                    "type": "number",
                    "description": "Longitude of the location (optional).",
                },
            },
        }

    async def execute(
        self,
        location: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
        **kwargs: Any,
    ) -> ToolResult:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                if (latitude is None or longitude is None) and location:
                    place = await geocode(client, location)
                    if place is None:
                        return ToolResult(
                            for_model=f'Error: Could not find coordinates for "{location}"',
                            for_user=f"I couldn't find the weather for {location}.",
                            error=ErrorInfo(type="LookupError", message=f"unknown location: {location}"),
                        )
                    latitude, longitude, location = place.latitude, place.longitude, place.name

                if latitude is None or longitude is None:
                    return ToolResult(
                        for_model="Error: No location provided. Please specify a city name.",
                        for_user="Please tell me which city you'd like the weather for!",
                        error=ErrorInfo(type="ValueError", message="no location provided"),
                    )

                response = await client.get(
                    FORECAST_URL,
                    params={
                        "latitude": latitude,
                        "longitude": longitude,
                        "current": CURRENT_FIELDS,
                        "daily": DAILY_FIELDS,
                        "timezone": "auto",
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            return ToolResult(
                for_model=f"Error fetching weather: {e}",
                for_user="I had trouble checking the weather right now.",
                error=ErrorInfo.from_exception(e),
            )

        if not data.get("current"):
            return ToolResult.failure("Error fetching weather: response had no current conditions")

        return self._report(location or "your area", data)

    def _report(self, place: str, data: dict[str, Any]) -> ToolResult:
        current = data["current"]
        daily = data.get("daily") or {}
        conditions = describe_weather_code(current.get("weather_code"))

        lines = [
            f"Detailed Weather in {place}:",
            f"- Current: {current.get('temperature_2m')}°C, {conditions}",
            f"- Feels like: {current.get('apparent_temperature')}°C",
            f"- Humidity: {current.get('relative_humidity_2m')}%",
            f"- Precipitation: {current.get('precipitation')}mm",
            f"- Wind: {current.get('wind_speed_10m')} km/h",
        ]
        high = None
        if daily.get("temperature_2m_max"):
            high = daily["temperature_2m_max"][0]
            lines.append(f"- Today's Range: {daily['temperature_2m_min'][0]}°C to {high}°C")
        if daily.get("uv_index_max"):
            lines.append(f"- UV Index (Peak): {daily['uv_index_max'][0]}")
        if daily.get("sunrise"):
            lines.append(f"- Sunrise: {_clock_time(daily['sunrise'][0])}")
        if daily.get("sunset"):
            lines.append(f"- Sunset: {_clock_time(daily['sunset'][0])}")

        summary = (
            f"It's currently {current.get('temperature_2m')}°C in {place} "
            f"with {conditions.lower()}."
        )
        if high is not None:
            summary += f" Today will see a high of {high}°C."

        return ToolResult(for_model="\n".join(lines), for_user=summary)
