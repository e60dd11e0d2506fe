from core.errors import StorePermissionDenied, StoreUnavailable
from main import app

NORTHWIND_ID = "0b6f7c1e-5a57-4c1b-9a53-2d0f3c8e9a11"


class TestPipelineApi:

    def test_list_deals_uses_camel_case(self, client):
        response = client.get("/api/pipeline")
        assert response.status_code == 200
        deals = response.json()["deals"]
        assert len(deals) == 5
        acme = next(d for d in deals if d["id"] == "3")
        assert acme["firmName"] == "Acme Capital"
        assert acme["stage"] == "meeting-booked"
        assert acme["contactCount"] == 0

    def test_list_stages(self, client):
        data = client.get("/api/pipeline/stages").json()
        assert data["main"][0]["id"] == "meeting-booked"
        assert data["default"] == "not-now"

    def test_create_deal(self, client, mock_sheets):
        response = client.post("/api/pipeline", json={"firmName": "Bridge Partners", "stage": "active-conversation"})
        assert response.status_code == 201
        deal = response.json()
        assert deal["id"]
        assert deal["value"] == ""
        assert deal["contactCount"] == 0

        deals = client.get("/api/pipeline").json()["deals"]
        assert any(d["id"] == deal["id"] and d["stage"] == "active-conversation" for d in deals)

    def test_create_with_unknown_stage_defaults(self, client):
        deal = client.post("/api/pipeline", json={"firmName": "Foo", "stage": "Limbo"}).json()
        assert deal["stage"] == "not-now"

    def test_create_without_firm_name_is_422(self, client, mock_sheets):
        response = client.post("/api/pipeline", json={"stage": "won"})
        assert response.status_code == 422
        assert "firmName" in response.json()["error"]
        assert mock_sheets.called("append_values") == []

    def test_update_deal(self, client, mock_sheets):
        response = client.put("/api/pipeline", json={
            "id": "3", "firmName": "Acme Capital", "stage": "won", "value": "50000",
        })
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert mock_sheets.rows("Pipeline")[2][1] == "Won"

    def test_update_stale_version_is_409(self, client):
        response = client.put("/api/pipeline", json={
            "id": NORTHWIND_ID, "firmName": "Northwind Ventures", "stage": "won", "version": 1,
        })
        assert response.status_code == 409
        assert "changed by someone else" in response.json()["error"]

    def test_update_unknown_deal_is_404(self, client):
        response = client.put("/api/pipeline", json={"id": "77", "firmName": "Ghost", "stage": "won"})
        assert response.status_code == 404
        assert response.json() == {"error": "Deal 77 not found"}

    def test_delete_twice(self, client):
        assert client.delete("/api/pipeline", params={"id": "5"}).json() == {"success": True}

        response = client.delete("/api/pipeline", params={"id": "5"})
        assert response.status_code == 404
        assert "error" in response.json()

        ids = [d["id"] for d in client.get("/api/pipeline").json()["deals"]]
        assert ids == [NORTHWIND_ID, "3", "4", "6"]

    def test_delete_requires_id(self, client):
        response = client.delete("/api/pipeline")
        assert response.status_code == 422

    def test_missing_sheet_is_404(self, client, mock_sheets):
        del mock_sheets.grids["Pipeline"]
        response = client.get("/api/pipeline")
        assert response.status_code == 404
        assert 'Sheet "Pipeline" not found' in response.json()["error"]

    def test_store_unavailable_is_503(self, client, mock_sheets):
        mock_sheets.fail_next("get_values", StoreUnavailable("Spreadsheet store unreachable"))
        response = client.get("/api/pipeline")
        assert response.status_code == 503
        assert response.json() == {"error": "Spreadsheet store unreachable"}

    def test_missing_configuration_is_503(self, client):
        app.dependency_overrides.clear()
        response = client.get("/api/pipeline")
        assert response.status_code == 503
        assert "Missing spreadsheet configuration" in response.json()["error"]


class TestPipelineUi:

    def test_board_page_renders_columns(self, client):
        response = client.get("/pipeline/ui")
        assert response.status_code == 200
        assert "Meeting Booked" in response.text
        assert "Acme Capital" in response.text
        assert "$50,000" in response.text

    def test_board_page_shows_store_error(self, client, mock_sheets):
        mock_sheets.fail_next("get_values", StorePermissionDenied("Permission denied."))
        response = client.get("/pipeline/ui")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Permission denied." in response.text
        assert "Retry" in response.text

    def test_board_page_without_configuration_is_html(self, client):
        """Sin credenciales la página de error sigue siendo HTML (no el envelope JSON)."""
        app.dependency_overrides.clear()
        response = client.get("/pipeline/ui")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Missing spreadsheet configuration" in response.text
