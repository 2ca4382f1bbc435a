"""World clock tool.

Accepts either an IANA timezone name ("Asia/Tokyo") or a place name, which
is geocoded through Open-Meteo to find its timezone.
"""

from datetime import datetime
from typing import Any, Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from ..types import ErrorInfo, ToolResult
from .base import BaseTool
from .geo import geocode

TIME_FORMAT = "%A, %B %d, %Y, %I:%M %p"


def _zone_from_name(name: str) -> ZoneInfo | None:
    if name.upper() == "UTC":
        name = "UTC"
    elif "/" not in name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


class WorldTimeTool(BaseTool):
    def __init__(
        self,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
        now: Callable[[ZoneInfo], datetime] | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._now = now or (lambda tz: datetime.now(tz))

    @property
    def name(self) -> str:
        return "get_world_time"

    @property
    def description(self) -> str:
        return "Get the current local time in any city or IANA timezone."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "location": {
                    "type": "string",
                    "description": 'City or timezone, e.g. "Tokyo" or "Europe/Paris".',
                },
            },
            "required": ["location"],
        }

    async def execute(self, location: str, **kwargs: Any) -> ToolResult:
        zone = _zone_from_name(location)
        if zone is None:
            try:
                zone = await self._lookup_zone(location)
            except httpx.HTTPError as e:
                return ToolResult(
                    for_model=f"Error in time tool: {e}",
                    for_user="I had a problem with that time operation.",
                    error=ErrorInfo.from_exception(e),
                )
        if zone is None:
            return ToolResult(
                for_model=f"Error: Could not find timezone for {location}",
                for_user=f"I couldn't find the timezone for {location}.",
                error=ErrorInfo(type="LookupError", message=f"unknown location: {location}"),
            )

        now = self._now(zone)
        return ToolResult(
            for_model=f"Current time in {location} ({zone.key}): {now.strftime(TIME_FORMAT)}",
            for_user=f"It's currently {now.strftime('%I:%M %p').lstrip('0')} in {location}.",
        )

    async def _lookup_zone(self, location: str) -> ZoneInfo | None:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            place = await geocode(client, location)
        if place is None or not place.timezone:
            return None
        return _zone_from_name(place.timezone) or ZoneInfo(place.timezone)
