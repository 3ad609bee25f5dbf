# =============================================================================
# tests/test_analytics_routes.py - Analytics Endpoint Tests
# =============================================================================

import pytest


def _url(project, suffix):
    return f"/api/projects/{project['id']}/analytics{suffix}"


@pytest.fixture
def piles(fake_db, project):
    fake_db.add_pile(project, block="A", pile_type="Interior", embedment=10, design_embedment=10, duration="0:12:00", start_date="2026-03-02", published=True)
    fake_db.add_pile(project, block="A", pile_type="Exterior", embedment=9.5, design_embedment=10, duration="0:06:00", start_date="2026-03-03")
    fake_db.add_pile(project, block="B", pile_type="Interior", embedment=7, design_embedment=10, start_date="2026-03-10")
    fake_db.add_pile(project, block=" ", pile_type="Interior")


def test_dashboard(client, project, piles, auth_headers):
    body = client.get(_url(project, "/dashboard"), headers=auth_headers()).json()
    assert body["project"]["id"] == project["id"]
    assert body["statistics"]["total_piles"] == 4
    assert body["statistics"]["accepted"] == 2
    assert body["statistics"]["refusals"] == 1


def test_dashboard_for_owner_account(client, fake_db, project, piles, auth_headers):
    rep = fake_db.add_user("rep@example.com", "rep-token", account_type="owner")
    fake_db.add_member(rep, project, role="owner_rep")
    body = client.get(_url(project, "/dashboard"), headers=auth_headers("rep-token")).json()
    assert body["statistics"]["total_piles"] == 1


def test_block_summaries(client, project, piles, auth_headers):
    body = client.get(_url(project, "/blocks"), headers=auth_headers()).json()
    assert body["embedment_tolerance"] == 1.0
    assert body["slow_drive_threshold_minutes"] == 10.0
    groups = {g["name"]: g for g in body["groups"]}
    assert set(groups) == {"A", "B"}
    assert groups["A"]["accepted_count"] == 1
    assert groups["A"]["tolerance_count"] == 1
    assert groups["A"]["slow_drive_time_count"] == 1
    assert groups["A"]["average_drive_time"] == 9.0
    assert groups["A"]["average_embedment"] == 9.75
    assert groups["A"]["design_embedment"] == 10.0


def test_pile_type_summaries(client, project, piles, auth_headers):
    body = client.get(_url(project, "/pile-types"), headers=auth_headers()).json()
    groups = {g["name"]: g for g in body["groups"]}
    assert groups["Interior"]["total_piles"] == 3
    assert groups["Interior"]["pending_count"] == 1
