# bovinsights/core/geo.py
"""
Consultas a serviços geográficos públicos.

- Geocodificação de endereços pelo Nominatim (OpenStreetMap), restrita ao Brasil.
- Imagens Sentinel-2 pelo catálogo STAC do Planetary Computer.

Nenhuma chamada é repetida em caso de falha.
"""
import datetime
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

import requests

from bovinsights import config
from bovinsights.core.errors import NotFoundError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

GEOCODE_ERROR = "Failed to fetch location data"
BBOX_ERROR = "bbox inválido. Deve ser um array [minLng, minLat, maxLng, maxLat]"
UNKNOWN_DATE = "Data desconhecida"


# --- Geocodificação ---

def geocode(query: str) -> List[Dict[str, Any]]:
    """Busca o endereço no Nominatim e devolve a resposta JSON sem alterações."""
    if not query or not query.strip():
        raise ValidationError('Query parameter "q" is required')

    params = {"format": "json", "q": query, "limit": 1, "countrycodes": "br"}
    headers = {
        "User-Agent": config.NOMINATIM_USER_AGENT,
        "Accept": "application/json",
        "Accept-Language": "pt-BR,pt;q=0.9",
    }
    try:
        resp = requests.get(config.NOMINATIM_URL, params=params, headers=headers, timeout=config.HTTP_TIMEOUT)
        resp.raise_for_status()
        return resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("Erro ao consultar o Nominatim: %s", e)
        raise UpstreamError(GEOCODE_ERROR) from e


# --- Imagens de satélite ---

def validate_bbox(bbox: Any) -> List[float]:
    """Confere que ``bbox`` é ``[minLng, minLat, maxLng, maxLat]`` numérico."""
    if not isinstance(bbox, (list, tuple)) or len(bbox) != 4:
        raise ValidationError(BBOX_ERROR)
    for value in bbox:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValidationError(BBOX_ERROR)
    return [float(value) for value in bbox]


def _cloud_cover(scene: Dict[str, Any], default: Optional[float] = None) -> Optional[float]:
    cloud = (scene.get("properties") or {}).get("eo:cloud_cover")
    return default if cloud is None else cloud


def _scene_datetime(scene: Dict[str, Any]) -> str:
    return (scene.get("properties") or {}).get("datetime") or ""


def select_scene(
    scenes: Sequence[Dict[str, Any]],
    max_cloud_cover: float = None,
    fallback_to_latest: bool = None,
) -> Optional[Dict[str, Any]]:
    """
    Escolhe a cena mais recente com cobertura de nuvens abaixo do limite.

    Cobertura ausente conta como 100%. Sem nenhuma cena aceitável, devolve a
    mais recente de todas quando ``fallback_to_latest`` está ligado, senão
    ``None``.
    """
    if max_cloud_cover is None:
        max_cloud_cover = config.SATELLITE_MAX_CLOUD_COVER
    if fallback_to_latest is None:
        fallback_to_latest = config.SATELLITE_FALLBACK_TO_LATEST
    if not scenes:
        return None

    clear = [s for s in scenes if _cloud_cover(s, default=100) < max_cloud_cover]
    if clear:
        return max(clear, key=_scene_datetime)
    if fallback_to_latest:
        logger.debug("Nenhuma cena abaixo de %s%% de nuvens; usando a mais recente", max_cloud_cover)
        return max(scenes, key=_scene_datetime)
    return None


def scene_summary(scene: Dict[str, Any]) -> Dict[str, Any]:
    """``{imageUrl, date, cloudCover}`` da cena, preferindo o preview renderizado."""
    assets = scene.get("assets") or {}
    image_url = (assets.get("rendered_preview") or {}).get("href") or (assets.get("visual") or {}).get("href")
    if not image_url:
        raise NotFoundError("Imagem não disponível para visualização")

    scene_datetime = _scene_datetime(scene)
    cloud = _cloud_cover(scene, default=0)
    return {
        "imageUrl": image_url,
        "date": scene_datetime.split("T")[0] if scene_datetime else UNKNOWN_DATE,
        # Arredonda meio para cima
        "cloudCover": int(math.floor(cloud + 0.5)),
    }


def search_satellite_scenes(bbox: Sequence[float], today: datetime.date = None) -> List[Dict[str, Any]]:
    """Cenas Sentinel-2 que cobrem a área, mais recentes primeiro."""
    today = today or datetime.date.today()
    start = today - datetime.timedelta(days=config.SATELLITE_LOOKBACK_DAYS)
    payload = {
        "collections": [config.STAC_COLLECTION],
        "bbox": list(bbox),
        "datetime": f"{start.isoformat()}/{today.isoformat()}",
        "limit": 10,
        "sortby": [{"field": "properties.datetime", "direction": "desc"}],
    }
    try:
        resp = requests.post(
            config.STAC_SEARCH_URL,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=config.HTTP_TIMEOUT,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("Erro ao consultar a API STAC: %s", e)
        raise UpstreamError("Erro ao consultar API de satélite") from e
    return data.get("features") or []


def latest_satellite_image(bbox: Any) -> Dict[str, Any]:
    bbox = validate_bbox(bbox)
    scenes = search_satellite_scenes(bbox)
    if not scenes:
        raise NotFoundError("Nenhuma imagem encontrada para esta área")

    scene = select_scene(scenes)
    if scene is None:
        raise NotFoundError("Nenhuma imagem com pouca cobertura de nuvens para esta área")
    logger.info("Cena %s selecionada para bbox %s", scene.get("id"), bbox)
    return scene_summary(scene)
