# bovinsights/config.py
import os
from dotenv import load_dotenv

load_dotenv()


def _get_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "sim", "on")


# Configurações do Supabase
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Configurações gerais
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "15"))

# Geocodificação (Nominatim / OpenStreetMap)
NOMINATIM_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org/search")
NOMINATIM_USER_AGENT = os.getenv(
    "NOMINATIM_USER_AGENT",
    "BovinsightsApp/1.0 (https://bovinsights.com; contato@bovinsights.com)",
)

# Imagens de satélite (STAC do Planetary Computer)
STAC_SEARCH_URL = os.getenv(
    "STAC_SEARCH_URL", "https://planetarycomputer.microsoft.com/api/stac/v1/search"
)
STAC_COLLECTION = os.getenv("STAC_COLLECTION", "sentinel-2-l2a")
SATELLITE_LOOKBACK_DAYS = int(os.getenv("SATELLITE_LOOKBACK_DAYS", "365"))
SATELLITE_MAX_CLOUD_COVER = float(os.getenv("SATELLITE_MAX_CLOUD_COVER", "30"))
# Sem nenhuma cena abaixo do limite de nuvens, usa a mais recente de todas
SATELLITE_FALLBACK_TO_LATEST = _get_bool("SATELLITE_FALLBACK_TO_LATEST", True)
