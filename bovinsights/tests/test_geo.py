import datetime
import unittest
from unittest.mock import MagicMock, patch

import requests

from bovinsights.core import geo
from bovinsights.core.errors import NotFoundError, UpstreamError, ValidationError


def scene(scene_id, date, cloud, assets=None):
    properties = {"datetime": f"{date}T13:45:00Z"}
    if cloud is not None:
        properties["eo:cloud_cover"] = cloud
    if assets is None:
        assets = {"rendered_preview": {"href": f"https://img/{scene_id}.png"}, "visual": {"href": f"https://img/{scene_id}.tif"}}
    return {"id": scene_id, "properties": properties, "assets": assets}


SCENES = [
    scene("s1", "2025-07-10", 5),
    scene("s2", "2025-07-20", 45),
    scene("s3", "2025-07-15", 20),
]


class TestSceneSelection(unittest.TestCase):
    def test_most_recent_clear_scene(self):
        chosen = geo.select_scene(SCENES, max_cloud_cover=30, fallback_to_latest=True)
        self.assertEqual(chosen["id"], "s3")

    def test_missing_cloud_cover_counts_as_cloudy(self):
        scenes = [scene("s1", "2025-07-10", 10), scene("s2", "2025-07-20", None)]
        self.assertEqual(geo.select_scene(scenes, 30, False)["id"], "s1")

    def test_fallback_to_latest(self):
        cloudy = [scene("s1", "2025-07-10", 60), scene("s2", "2025-07-20", 30)]
        self.assertEqual(geo.select_scene(cloudy, 30, True)["id"], "s2")
        self.assertIsNone(geo.select_scene(cloudy, 30, False))

    def test_scene_summary(self):
        summary = geo.scene_summary(scene("s1", "2025-07-10", 12.5))
        self.assertEqual(summary, {"imageUrl": "https://img/s1.png", "date": "2025-07-10", "cloudCover": 13})

    def test_scene_summary_falls_back_to_visual_asset(self):
        s = scene("s1", "2025-07-10", 4.2, assets={"visual": {"href": "https://img/visual.tif"}})
        self.assertEqual(geo.scene_summary(s)["imageUrl"], "https://img/visual.tif")

    def test_scene_summary_without_asset(self):
        with self.assertRaises(NotFoundError):
            geo.scene_summary(scene("s1", "2025-07-10", 4, assets={}))

    def test_scene_summary_unknown_date(self):
        s = {"properties": {}, "assets": {"visual": {"href": "https://img/v.tif"}}}
        summary = geo.scene_summary(s)
        self.assertEqual(summary["date"], "Data desconhecida")
        self.assertEqual(summary["cloudCover"], 0)

    def test_validate_bbox(self):
        self.assertEqual(geo.validate_bbox([-47, -15, -46.9, -14.9]), [-47.0, -15.0, -46.9, -14.9])
        for bad in (None, [1, 2, 3], [1, 2, 3, "4"], [1, 2, 3, True], "1,2,3,4"):
            with self.assertRaises(ValidationError):
                geo.validate_bbox(bad)


class TestSatelliteSearch(unittest.TestCase):
    @patch('bovinsights.core.geo.requests.post')
    def test_search_payload(self, mock_post):
        mock_post.return_value.json.return_value = {"features": SCENES}

        result = geo.search_satellite_scenes([-47, -15, -46.9, -14.9], today=datetime.date(2025, 7, 31))

        payload = mock_post.call_args.kwargs["json"]
        self.assertEqual(payload["collections"], ["sentinel-2-l2a"])
        self.assertEqual(payload["limit"], 10)
        self.assertTrue(payload["datetime"].endswith("/2025-07-31"))
        self.assertEqual(payload["sortby"], [{"field": "properties.datetime", "direction": "desc"}])
        self.assertEqual(len(result), 3)

    @patch('bovinsights.core.geo.requests.post')
    def test_latest_image(self, mock_post):
        mock_post.return_value.json.return_value = {"features": SCENES}
        with patch.object(geo.config, "SATELLITE_FALLBACK_TO_LATEST", True):
            result = geo.latest_satellite_image([-47, -15, -46.9, -14.9])
        self.assertEqual(result, {"imageUrl": "https://img/s3.png", "date": "2025-07-15", "cloudCover": 20})

    @patch('bovinsights.core.geo.requests.post')
    def test_no_scenes(self, mock_post):
        mock_post.return_value.json.return_value = {"features": []}
        with self.assertRaises(NotFoundError) as ctx:
            geo.latest_satellite_image([-47, -15, -46.9, -14.9])
        self.assertEqual(ctx.exception.message, "Nenhuma imagem encontrada para esta área")

    @patch('bovinsights.core.geo.requests.post')
    def test_upstream_error(self, mock_post):
        mock_post.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError("502")
        with self.assertRaises(UpstreamError) as ctx:
            geo.latest_satellite_image([-47, -15, -46.9, -14.9])
        self.assertEqual(ctx.exception.message, "Erro ao consultar API de satélite")
        self.assertEqual(mock_post.call_count, 1)

    @patch('bovinsights.core.geo.requests.post')
    def test_invalid_bbox_skips_request(self, mock_post):
        with self.assertRaises(ValidationError):
            geo.latest_satellite_image([1, 2])
        mock_post.assert_not_called()


class TestGeocode(unittest.TestCase):
    @patch('bovinsights.core.geo.requests.get')
    def test_geocode_passes_through_response(self, mock_get):
        body = [{"lat": "-15.79", "lon": "-47.88", "display_name": "Brasília, DF"}]
        mock_get.return_value.json.return_value = body

        self.assertEqual(geo.geocode("Brasília"), body)

        params = mock_get.call_args.kwargs["params"]
        headers = mock_get.call_args.kwargs["headers"]
        self.assertEqual(params, {"format": "json", "q": "Brasília", "limit": 1, "countrycodes": "br"})
        self.assertIn("User-Agent", headers)

    def test_geocode_requires_query(self):
        with self.assertRaises(ValidationError) as ctx:
            geo.geocode("   ")
        self.assertEqual(ctx.exception.message, 'Query parameter "q" is required')

    @patch('bovinsights.core.geo.requests.get')
    def test_geocode_failure(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError("offline")
        with self.assertRaises(UpstreamError) as ctx:
            geo.geocode("Goiânia")
        self.assertEqual(ctx.exception.message, "Failed to fetch location data")


if __name__ == '__main__':
    unittest.main()
