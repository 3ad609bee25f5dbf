# =============================================================================
# tests/test_heatmap_routes.py - Heatmap Endpoint Tests
# =============================================================================

import pytest

# Texas Central false origin in US survey feet
ORIGIN_EASTING = 2296583.333
ORIGIN_NORTHING = 9842500.0


def _url(project):
    return f"/api/projects/{project['id']}/heatmap"


def test_coordinate_systems_listing(client):
    systems = client.get("/api/coordinate-systems").json()
    assert {"code": "EPSG:2277", "name": "Texas Central"} in systems


class TestHeatmap:
    def test_points_use_configured_zone(self, client, fake_db, project, auth_headers):
        fake_db.rows("projects")[0]["coordinate_system"] = "EPSG:2277"
        fake_db.add_pile(project, pile_id="A-1", northing=ORIGIN_NORTHING, easting=ORIGIN_EASTING, embedment=10, design_embedment=10)
        fake_db.add_pile(project, pile_id="A-2", northing=ORIGIN_NORTHING + 100, easting=ORIGIN_EASTING, embedment=7, design_embedment=10)
        fake_db.add_pile(project, pile_id="A-3")

        body = client.get(_url(project), headers=auth_headers()).json()
        assert body["coordinate_system"] == "EPSG:2277"
        assert body["coordinate_system_name"] == "Texas Central"
        assert body["status_counts"] == {"accepted": 1, "tolerance": 0, "refusal": 1, "pending": 0}
        assert body["skipped"] == 0

        first = body["points"][0]
        assert first["pile_tag"] == "A-1"
        assert first["lat"] == pytest.approx(29.6667, abs=1e-3)
        assert first["lng"] == pytest.approx(-100.3333, abs=1e-3)
        assert body["points"][1]["lat"] > first["lat"]
        assert body["center"]["lat"] == pytest.approx(29.6668, abs=1e-3)

    def test_zone_detected_from_location(self, client, fake_db, project, auth_headers):
        fake_db.rows("projects")[0].update({"location_lat": 30.27, "location_lng": -97.74})
        fake_db.add_pile(project, pile_id="A-1", northing=ORIGIN_NORTHING, easting=ORIGIN_EASTING)
        body = client.get(_url(project), headers=auth_headers()).json()
        assert body["coordinate_system"] == "EPSG:2277"
        assert len(body["points"]) == 1

    def test_no_zone_skips_every_point(self, client, fake_db, project, auth_headers):
        fake_db.add_pile(project, pile_id="A-1", northing=ORIGIN_NORTHING, easting=ORIGIN_EASTING)
        body = client.get(_url(project), headers=auth_headers()).json()
        assert body["points"] == []
        assert body["skipped"] == 1
        assert body["center"] is None

    def test_owner_account_sees_published_only(self, client, fake_db, project, auth_headers):
        fake_db.rows("projects")[0]["coordinate_system"] = "EPSG:2277"
        rep = fake_db.add_user("rep@example.com", "rep-token", account_type="owner")
        fake_db.add_member(rep, project, role="owner_rep")
        fake_db.add_pile(project, pile_id="A-1", northing=ORIGIN_NORTHING, easting=ORIGIN_EASTING, published=True)
        fake_db.add_pile(project, pile_id="A-2", northing=ORIGIN_NORTHING, easting=ORIGIN_EASTING)
        body = client.get(_url(project), headers=auth_headers("rep-token")).json()
        assert [p["pile_tag"] for p in body["points"]] == ["A-1"]
