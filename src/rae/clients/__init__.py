"""External service clients."""

from rae.clients.geocoder import ReverseGeocoder
from rae.clients.reporting import ReportingClient

__all__ = ["ReverseGeocoder", "ReportingClient"]
