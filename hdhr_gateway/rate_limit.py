"""
Rate limiter shared by the app and the add-on routes.
Artwork and health routes are not limited: one catalog page loads two images per channel.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from hdhr_gateway.config import get_settings

limiter = Limiter(key_func=get_remote_address)

ADDON_RATE_LIMIT = f"{get_settings().rate_limit_per_minute}/minute"
