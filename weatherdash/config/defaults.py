"""Default endpoints and fallbacks."""

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
AIR_QUALITY_URL = "https://air-quality-api.open-meteo.com/v1/air-quality"
GEOCODE_URL = "https://geocoding-api.open-meteo.com/v1/search"
REVERSE_GEOCODE_URL = "https://nominatim.openstreetmap.org/reverse"
GEOIP_URL = "https://ipapi.co/json/"
DEFAULT_USER_AGENT = "weatherdash/0.1.0"

# Geocoded when neither a city nor coordinates are given and IP lookup fails.
DEFAULT_CITY = "Stockholm"

RECENT_LOCATIONS_MAX = 12
SETTINGS_FILENAME = "settings.yaml"
