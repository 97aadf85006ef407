"""Link shortener business logic services."""

from linkly.services import analytics as analytics_service
from linkly.services import link as link_service
from linkly.services.click_ingestion import ClickIngestionPipeline, store_click
from linkly.services.geoip import GeoLocation, GeoLookupCache, IpApiGeoService
from linkly.services.redirect import Found, NotFound, RedirectResolver, Visit
from linkly.services.user_agent import UserAgentInfo, classify_user_agent

__all__ = [
    "analytics_service",
    "link_service",
    # Click ingestion
    "ClickIngestionPipeline",
    "store_click",
    # Geolocation
    "GeoLocation",
    "GeoLookupCache",
    "IpApiGeoService",
    # Redirects
    "Found",
    "NotFound",
    "RedirectResolver",
    "Visit",
    # User agents
    "UserAgentInfo",
    "classify_user_agent",
]
