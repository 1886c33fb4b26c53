"""
Tests for the JSON API.
"""

from __future__ import annotations

import io
from typing import Any, Dict

import pytest
from openpyxl import load_workbook

from app import app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def upload(data: bytes, filename: str = "tb.xlsx", **fields: Any) -> Dict[str, Any]:
    form: Dict[str, Any] = {"file": (io.BytesIO(data), filename)}
    form.update(fields)
    return form


def specialist() -> Dict[str, str]:
    return {"X-User-Role": "DOC_SPECIALIST"}


class TestHealth:
    def test_health(self, client) -> None:
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "online"


class TestSheets:
    def test_lists_sheets(self, client, tally_xlsx: bytes) -> None:
        resp = client.post("/api/sheets", data=upload(tally_xlsx),
                           content_type="multipart/form-data")
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["sheets"] == ["Trial Balance"]
        assert body["suggested"] == "Trial Balance"

    def test_missing_file(self, client) -> None:
        resp = client.post("/api/sheets", data={}, content_type="multipart/form-data")
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_wrong_extension(self, client) -> None:
        resp = client.post("/api/sheets", data=upload(b"x", "tb.txt"),
                           content_type="multipart/form-data")
        assert resp.status_code == 400
        assert "Invalid file type" in resp.get_json()["error"]

    def test_corrupt_workbook(self, client) -> None:
        resp = client.post("/api/sheets", data=upload(b"not a workbook"),
                           content_type="multipart/form-data")
        assert resp.status_code == 400


class TestExtract:
    def test_extract(self, client, tally_xlsx: bytes) -> None:
        resp = client.post("/api/extract", data=upload(tally_xlsx),
                           headers=specialist(), content_type="multipart/form-data")
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["hasDocument"] is True
        assert body["document"]["type"] == "TRIAL_BALANCE"
        assert len(body["document"]["rowsFlat"]) == 8
        assert body["report"]["valid"] is True

    def test_role_refused(self, client, tally_xlsx: bytes) -> None:
        resp = client.post("/api/extract", data=upload(tally_xlsx),
                           headers={"X-User-Role": "CA"},
                           content_type="multipart/form-data")
        assert resp.status_code == 403
        assert resp.get_json()["hasDocument"] is False

    def test_no_role(self, client, tally_xlsx: bytes) -> None:
        resp = client.post("/api/extract", data=upload(tally_xlsx),
                           content_type="multipart/form-data")
        assert resp.status_code == 403

    def test_unknown_sheet(self, client, tally_xlsx: bytes) -> None:
        resp = client.post("/api/extract", data=upload(tally_xlsx, sheet="Nope"),
                           headers=specialist(), content_type="multipart/form-data")
        assert resp.status_code == 404
        assert "Nope" in resp.get_json()["error"]

    def test_csv(self, client) -> None:
        text = b"Particulars,Opening,Debit,Credit,Closing\nCash,100 Dr,10,5,105 Dr\n"
        resp = client.post("/api/extract", data=upload(text, "march.csv"),
                           headers=specialist(), content_type="multipart/form-data")
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["document"]["sheetName"] == "march"


class TestExport:
    def _document(self, client, tally_xlsx: bytes) -> Dict[str, Any]:
        resp = client.post("/api/extract", data=upload(tally_xlsx),
                           headers=specialist(), content_type="multipart/form-data")
        return resp.get_json()["document"]

    def test_export_download(self, client, tally_xlsx: bytes) -> None:
        document = self._document(client, tally_xlsx)
        resp = client.post("/api/export", json={"document": document},
                           headers={"X-User-Role": "CA"})
        assert resp.status_code == 200
        assert resp.mimetype.endswith("spreadsheetml.sheet")
        assert "attachment" in resp.headers["Content-Disposition"]

        ws = load_workbook(io.BytesIO(resp.data)).active
        assert ws["A1"].value == "ABC Traders Pvt Ltd"
        assert ws["A7"].value == "Capital Account"

    def test_sheet_title(self, client, tally_xlsx: bytes) -> None:
        document = self._document(client, tally_xlsx)
        resp = client.post("/api/export",
                           json={"document": document, "sheetTitle": "FY25"},
                           headers={"X-User-Role": "TEAM_LEAD"})
        assert load_workbook(io.BytesIO(resp.data)).active.title == "FY25"

    def test_no_document(self, client) -> None:
        resp = client.post("/api/export", json={}, headers={"X-User-Role": "MANAGER"})
        assert resp.status_code == 200
        assert resp.get_json() == {"success": True, "hasDocument": False}

    def test_role_refused(self, client, tally_xlsx: bytes) -> None:
        document = self._document(client, tally_xlsx)
        resp = client.post("/api/export", json={"document": document},
                           headers={"X-User-Role": "GUEST"})
        assert resp.status_code == 403

    def test_invalid_document(self, client) -> None:
        resp = client.post("/api/export", json={"document": {"type": "OTHER"}},
                           headers={"X-User-Role": "CA"})
        assert resp.status_code == 400

    @pytest.mark.parametrize("document", [["x"], "TRIAL_BALANCE", {"rows": ["x"]}])
    def test_malformed_document(self, client, document: Any) -> None:
        resp = client.post("/api/export", json={"document": document},
                           headers={"X-User-Role": "CA"})
        assert resp.status_code == 400
        assert resp.get_json()["error"].startswith("Invalid document")
