"""Python SDK for the GlobeTrotter auth service"""
from globetrotter.client import GlobeTrotterClient, GlobeTrotterError

__all__ = ["GlobeTrotterClient", "GlobeTrotterError"]
__version__ = "0.1.0"
