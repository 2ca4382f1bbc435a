"""Open-Meteo geocoding shared by the weather and time tools."""

from dataclasses import dataclass

import httpx

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"


@dataclass
class Place:
    name: str
    latitude: float
    longitude: float
    timezone: str | None = None
    country: str | None = None


async def geocode(client: httpx.AsyncClient, name: str) -> Place | None:
    """Resolve a place name to coordinates and timezone.

    Returns:
        The best match, or None if the name is unknown.

    Raises:
        httpx.HTTPError: On network failures or error statuses.
    """
    response = await client.get(
        GEOCODING_URL,
        params={"name": name, "count": 1, "language": "en", "format": "json"},
    )
    response.raise_for_status()
    results = response.json().get("results") or []
    if not results:
        return None
    top = results[0]
    return Place(
        name=top.get("name", name),
        latitude=top["latitude"],
        longitude=top["longitude"],
        timezone=top.get("timezone"),
        country=top.get("country"),
    )
