"""Service classes for business logic."""

from sitepulse.services.engagement_counter import EngagementCounter
from sitepulse.services.geolocation import (
    GeoLocationResolver,
    GeoProvider,
    IpapiProvider,
    IpinfoProvider,
    geolocation_enabled,
    is_geolocatable,
)

__all__ = [
    "EngagementCounter",
    "GeoLocationResolver",
    "GeoProvider",
    "IpapiProvider",
    "IpinfoProvider",
    "geolocation_enabled",
    "is_geolocatable",
]
