# =============================================================================
# tests/test_piles_routes.py - Pile Endpoint Tests
# =============================================================================
# CRUD, filtered listing with stats, visibility of unpublished piles for
# owner accounts, spreadsheet import/export and duplicate clean-up.
# =============================================================================

import io

import pandas as pd
import pytest


def _url(project, suffix=""):
    return f"/api/projects/{project['id']}/piles{suffix}"


@pytest.fixture
def seeded(fake_db, project):
    """One pile per status plus a pair sharing a pile id"""
    return {
        "accepted": fake_db.add_pile(project, pile_id="A-1", pile_number="1", block="A", embedment=10, design_embedment=10, start_date="2026-03-02", published=True),
        "tolerance": fake_db.add_pile(project, pile_id="A-2", pile_number="2", block="A", embedment=9.5, design_embedment=10, start_date="2026-03-03"),
        "refusal": fake_db.add_pile(project, pile_id="B-1", pile_number="3", block="B", embedment=8, design_embedment=10, start_date="2026-03-04"),
        "pending": fake_db.add_pile(project, pile_id="B-2", pile_number="4", block="B", notes="check rig"),
        "dup_a": fake_db.add_pile(project, pile_id="DUP", pile_number="5", block="C", embedment=10, design_embedment=10),
        "dup_b": fake_db.add_pile(project, pile_id="DUP", pile_number="6", block="C", embedment=10, design_embedment=10),
    }


@pytest.fixture
def owner_rep(fake_db, project):
    rep = fake_db.add_user("rep@example.com", "rep-token", account_type="owner")
    fake_db.add_member(rep, project, role="owner_rep")
    return rep


class TestListPiles:
    def test_stats_and_duplicates_first(self, client, project, seeded, auth_headers):
        response = client.get(_url(project), headers=auth_headers())
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 6
        assert body["stats"] == {
            "total": 6, "accepted": 3, "tolerance": 1, "refusal": 1, "pending": 1, "duplicates": 2
        }
        assert [p["pile_id"] for p in body["piles"][:2]] == ["DUP", "DUP"]
        assert all(p["is_duplicate"] for p in body["piles"][:2])

    def test_filters(self, client, project, seeded, auth_headers):
        headers = auth_headers()
        by_status = client.get(_url(project), params={"status": "refusal"}, headers=headers).json()
        assert [p["pile_id"] for p in by_status["piles"]] == ["B-1"]

        by_block = client.get(_url(project), params={"block": "A"}, headers=headers).json()
        assert by_block["total"] == 2

        by_date = client.get(
            _url(project), params={"start_date": "2026-03-03", "end_date": "2026-03-04"}, headers=headers
        ).json()
        assert {p["pile_id"] for p in by_date["piles"]} == {"A-2", "B-1"}

        by_search = client.get(_url(project), params={"search": "RIG"}, headers=headers).json()
        assert [p["pile_id"] for p in by_search["piles"]] == ["B-2"]

        dups = client.get(_url(project), params={"duplicates_only": True}, headers=headers).json()
        assert dups["total"] == 2

    def test_pagination(self, client, project, seeded, auth_headers):
        body = client.get(_url(project), params={"page": 2, "page_size": 4}, headers=auth_headers()).json()
        assert body["total_pages"] == 2
        assert len(body["piles"]) == 2

    def test_owner_account_sees_published_only(self, client, project, seeded, owner_rep, auth_headers):
        body = client.get(_url(project), headers=auth_headers("rep-token")).json()
        assert [p["pile_id"] for p in body["piles"]] == ["A-1"]

    def test_non_member_forbidden(self, client, fake_db, project, auth_headers):
        fake_db.add_user("stranger@example.com", "stranger-token")
        response = client.get(_url(project), headers=auth_headers("stranger-token"))
        assert response.status_code == 403


class TestPileCrud:
    def test_create_derives_embedment(self, client, project, auth_headers):
        response = client.post(_url(project), json={
            "pile_id": "N-1",
            "pile_number": "10",
            "start_z": 100,
            "end_z": 90,
            "design_embedment": 10,
            "machine": "7",
            "zone": "  "
        }, headers=auth_headers())
        assert response.status_code == 201
        body = response.json()
        assert body["embedment"] == 10
        assert body["status"] == "accepted"
        assert body["machine"] == 7
        assert body["zone"] is None
        assert body["published"] is False

    def test_invalid_number_rejected(self, client, project, auth_headers):
        response = client.post(_url(project), json={
            "pile_id": "N-1", "pile_number": "10", "embedment": "deep"
        }, headers=auth_headers())
        assert response.status_code == 422

    def test_owner_account_cannot_write(self, client, project, owner_rep, auth_headers):
        response = client.post(_url(project), json={"pile_id": "N-1", "pile_number": "10"}, headers=auth_headers("rep-token"))
        assert response.status_code == 403

    def test_get_update_and_status_override(self, client, project, seeded, auth_headers):
        pile = seeded["refusal"]
        headers = auth_headers()
        assert client.get(_url(project, f"/{pile['id']}"), headers=headers).json()["status"] == "refusal"

        updated = client.put(_url(project, f"/{pile['id']}"), json={"embedment": 9.2}, headers=headers).json()
        assert updated["status"] == "tolerance"
        assert updated["updated_at"] is not None

        overridden = client.patch(
            _url(project, f"/{pile['id']}/status"), json={"pile_status": "accepted"}, headers=headers
        ).json()
        assert overridden["status"] == "accepted"

    def test_update_rejects_blank_identifier(self, client, project, seeded, auth_headers):
        pile = seeded["accepted"]
        response = client.put(_url(project, f"/{pile['id']}"), json={"pile_id": ""}, headers=auth_headers())
        assert response.status_code == 400

    def test_missing_pile(self, client, project, auth_headers):
        assert client.get(_url(project, "/nope"), headers=auth_headers()).status_code == 404

    def test_delete(self, client, fake_db, project, seeded, auth_headers):
        pile = seeded["pending"]
        response = client.delete(_url(project, f"/{pile['id']}"), headers=auth_headers())
        assert response.status_code == 204
        assert len(fake_db.rows("piles")) == 5

    def test_bulk_and_delete_all(self, client, fake_db, project, seeded, auth_headers):
        headers = auth_headers()
        ids = [seeded["accepted"]["id"], seeded["tolerance"]["id"]]
        assert client.post(_url(project, "/bulk-delete"), json={"ids": ids}, headers=headers).json() == {"deleted": 2}
        assert client.delete(_url(project), headers=headers).json() == {"deleted": 4}
        assert fake_db.rows("piles") == []


class TestNotes:
    def test_set_list_and_clear(self, client, project, seeded, auth_headers):
        headers = auth_headers()
        pile = seeded["accepted"]
        client.put(_url(project, f"/{pile['id']}/notes"), json={"notes": " pre-drilled "}, headers=headers)

        notes = client.get(_url(project, "/notes"), headers=headers).json()
        assert {n["pile_id"]: n["notes"] for n in notes} == {"A-1": "pre-drilled", "B-2": "check rig"}

        cleared = client.delete(_url(project, f"/{pile['id']}/notes"), headers=headers).json()
        assert cleared["notes"] is None

    def test_empty_note_rejected(self, client, project, seeded, auth_headers):
        pile = seeded["accepted"]
        response = client.put(_url(project, f"/{pile['id']}/notes"), json={"notes": "   "}, headers=auth_headers())
        assert response.status_code == 422


class TestDuplicatesAndPublishing:
    def test_delete_duplicates_keeps_oldest(self, client, fake_db, project, seeded, auth_headers):
        response = client.post(_url(project, "/delete-duplicates"), headers=auth_headers())
        assert response.json() == {"deleted": 1}
        remaining = [p["id"] for p in fake_db.rows("piles") if p["pile_id"] == "DUP"]
        assert remaining == [seeded["dup_a"]["id"]]

    def test_large_duplicate_purge_is_chunked(self, client, fake_db, project, auth_headers, monkeypatch):
        for _ in range(250):
            fake_db.add_pile(project, pile_id="X-1", pile_number="1", embedment=9, gain_per_30_seconds=2, start_time="08:00")
        chunk_sizes = []
        real_table = fake_db.table

        def table(name):
            query = real_table(name)
            real_in = query.in_

            def in_(column, values):
                chunk_sizes.append(len(values))
                return real_in(column, values)

            query.in_ = in_
            return query

        monkeypatch.setattr(fake_db, "table", table)
        response = client.post(_url(project, "/delete-duplicates"), headers=auth_headers())
        assert response.json() == {"deleted": 249}
        assert chunk_sizes == [100, 100, 49]
        assert len(fake_db.rows("piles")) == 1

    def test_publish_selected(self, client, fake_db, project, seeded, auth_headers):
        response = client.post(
            _url(project, "/publish"), json={"ids": [seeded["refusal"]["id"]]}, headers=auth_headers()
        )
        assert response.json() == {"updated": 1}
        published = {p["pile_id"] for p in fake_db.rows("piles") if p["published"]}
        assert published == {"A-1", "B-1"}

    def test_publish_all(self, client, fake_db, project, seeded, auth_headers):
        client.post(_url(project, "/publish"), json={}, headers=auth_headers())
        assert all(p["published"] for p in fake_db.rows("piles"))


class TestImport:
    def test_csv_import(self, client, fake_db, project, auth_headers):
        fake_db.add_pile(project, pile_id="A-1", pile_number="A-1")
        content = (
            "Pile ID,Block,Embedment,Design Embedment,Start Date\n"
            "A-1,A,10,10,3/2/2026\n"
            "A-2,A,9,10,3/2/2026\n"
            "A-3,A,abc,10,3/2/2026\n"
            ",B,7,10,\n"
        ).encode()
        response = client.post(
            _url(project, "/import"),
            files={"file": ("piles.csv", content, "text/csv")},
            headers=auth_headers()
        )
        assert response.status_code == 200
        body = response.json()
        assert body["imported"] == 2
        assert body["skipped_duplicates"] == 1
        assert body["total_rows"] == 4
        assert body["error_count"] == 2
        assert body["mapped_columns"]["pile_id"] == "Pile ID"

        imported = {p["pile_number"]: p for p in fake_db.rows("piles") if p.get("block")}
        assert imported["A-2"]["start_date"] == "2026-03-02"
        assert imported["B-4"]["pile_id"] is None

    def test_requires_identifier_column(self, client, project, auth_headers):
        response = client.post(
            _url(project, "/import"),
            files={"file": ("piles.csv", b"Embedment\n10\n", "text/csv")},
            headers=auth_headers()
        )
        assert response.status_code == 400

    def test_no_valid_rows(self, client, project, auth_headers):
        response = client.post(
            _url(project, "/import"),
            files={"file": ("piles.csv", b"Pile ID,Embedment\nA-1,abc\n", "text/csv")},
            headers=auth_headers()
        )
        assert response.status_code == 400
        assert "error_summary" in response.json()["detail"]


class TestExport:
    def test_csv(self, client, project, seeded, auth_headers):
        response = client.get(_url(project, "/export"), headers=auth_headers())
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "Sunfield_Solar_piles_" in response.headers["content-disposition"]
        df = pd.read_csv(io.StringIO(response.text))
        assert len(df) == 6
        assert set(df["status"]) == {"accepted", "tolerance", "refusal", "pending"}

    def test_xlsx_for_owner_account(self, client, project, seeded, owner_rep, auth_headers):
        response = client.get(_url(project, "/export"), params={"format": "xlsx"}, headers=auth_headers("rep-token"))
        assert response.status_code == 200
        df = pd.read_excel(io.BytesIO(response.content), sheet_name="Piles")
        assert list(df["pile_id"]) == ["A-1"]

    def test_unknown_format(self, client, project, auth_headers):
        response = client.get(_url(project, "/export"), params={"format": "pdf"}, headers=auth_headers())
        assert response.status_code == 422
