from __future__ import annotations

import logging
from typing import Optional

import requests

from ..core.constants import (
    DEFAULT_GEOCODER_TIMEOUT_SECONDS,
    DEFAULT_GEOCODER_URL,
    DEFAULT_GEOCODER_USER_AGENT,
)

logger = logging.getLogger(__name__)

_ADDRESS_PARTS = (
    ("house_number",),
    ("road",),
    ("suburb", "neighbourhood"),
    ("city", "town", "village"),
    ("state",),
    ("postcode",),
    ("country",),
)


def coordinates_label(latitude: float, longitude: float) -> str:
    return f"{float(latitude):.6f}, {float(longitude):.6f}"


class ReverseGeocoder:
    """Turn coordinates into a human-readable address.

    Talks to a Nominatim-compatible ``/reverse`` endpoint. Lookups never fail
    the caller: any network or payload problem returns the raw coordinates.
    """

    def __init__(
        self,
        *,
        url: str = DEFAULT_GEOCODER_URL,
        timeout: float = DEFAULT_GEOCODER_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_GEOCODER_USER_AGENT,
        session: Optional[requests.Session] = None,
    ):
        self._url = url
        self._timeout = timeout
        self._user_agent = user_agent
        self._session = session or requests.Session()

    def label(self, latitude: float, longitude: float) -> str:
        fallback = coordinates_label(latitude, longitude)
        try:
            resp = self._session.get(
                self._url,
                params={
                    "format": "json",
                    "lat": latitude,
                    "lon": longitude,
                    "zoom": 18,
                    "addressdetails": 1,
                },
                headers={"User-Agent": self._user_agent, "Accept": "application/json"},
                timeout=self._timeout,
            )
            if resp.status_code == 429:
                logger.warning("Geocoder rate limit hit, using coordinates")
                return fallback
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Reverse geocoding failed for %s: %s", fallback, e)
            return fallback

        if not isinstance(payload, dict) or payload.get("error"):
            logger.warning("Geocoder returned no address for %s", fallback)
            return fallback

        address = payload.get("address")
        if not isinstance(address, dict):
            address = {}
        parts = []
        for keys in _ADDRESS_PARTS:
            value = next((address.get(k) for k in keys if address.get(k)), None)
            if isinstance(value, str):
                parts.append(value)

        if parts:
            return ", ".join(parts)
        display_name = payload.get("display_name")
        if isinstance(display_name, str) and display_name.strip():
            return display_name.strip()
        return fallback
