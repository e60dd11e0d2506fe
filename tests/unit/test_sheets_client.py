import json
from urllib.parse import unquote

import httplib2
import pytest

from core.errors import (
    StoreError, StorePermissionDenied, StoreSchemaError, StoreUnavailable, StoreWriteError,
)
from core.sheets import SheetsClient


class FakeHttp:
    """
    Reemplaza httplib2.Http: responde en orden y guarda cada request
    como (method, uri decodificada, body).
    """

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def request(self, uri, method="GET", body=None, headers=None, redirections=5, connection_type=None):
        self.requests.append((method, unquote(uri), json.loads(body) if body else None))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        status, payload = response
        return httplib2.Response({"status": str(status)}), json.dumps(payload).encode("utf-8")

    def close(self):
        pass


def make_client(*responses):
    http = FakeHttp(responses)
    return SheetsClient("sheet-123", http_factory=lambda: http), http


def google_error(status, message):
    return status, {"error": {"code": status, "message": message}}


class TestSheetsClient:

    @pytest.mark.asyncio
    async def test_get_values(self):
        client, http = make_client((200, {"range": "Pipeline!A1:L3", "values": [["Firm Name"], ["Acme"]]}))

        rows = await client.get_values("Pipeline!A1:L")

        assert rows == [["Firm Name"], ["Acme"]]
        method, uri, _ = http.requests[0]
        assert method == "GET"
        assert "/spreadsheets/sheet-123/values/Pipeline!A1:L" in uri
        await client.close()

    @pytest.mark.asyncio
    async def test_get_values_empty_range(self):
        client, _ = make_client((200, {"range": "Pipeline!A1:L"}))
        assert await client.get_values("Pipeline!A1:L") == []

    @pytest.mark.asyncio
    async def test_update_values_payload(self):
        client, http = make_client((200, {"updatedRows": 1}))

        await client.update_values("Pipeline!A3:L3", [["Acme Capital", "Won"]])

        method, uri, body = http.requests[0]
        assert method == "PUT"
        assert "valueInputOption=RAW" in uri
        assert body["values"] == [["Acme Capital", "Won"]]
        assert body["range"] == "Pipeline!A3:L3"

    @pytest.mark.asyncio
    async def test_append_and_clear(self):
        client, http = make_client(
            (200, {"updates": {"updatedRange": "Pipeline!A7:L7"}}),
            (200, {"clearedRange": "Pipeline!A7:L7"}),
        )

        updates = await client.append_values("Pipeline!A1:L", [["Bridge Partners"]])
        await client.clear_values("Pipeline!A7:L7")

        assert updates == {"updatedRange": "Pipeline!A7:L7"}
        append, clear = http.requests
        assert append[0] == "POST" and ":append" in append[1]
        assert "insertDataOption=INSERT_ROWS" in append[1]
        assert clear[0] == "POST" and ":clear" in clear[1]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_permission_denied(self, status):
        client, _ = make_client(google_error(status, "The caller does not have permission"))
        with pytest.raises(StorePermissionDenied) as exc:
            await client.get_values("Pipeline!A1:L")
        assert exc.value.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_sheet_is_schema_error(self):
        client, _ = make_client(google_error(400, "Unable to parse range: Pipline!A1:L"))
        with pytest.raises(StoreSchemaError) as exc:
            await client.get_values("Pipline!A1:L")
        assert 'Sheet "Pipline" not found' in exc.value.message

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable(self):
        client, _ = make_client(google_error(503, "Backend Error"))
        with pytest.raises(StoreUnavailable):
            await client.get_values("Pipeline!A1:L")

    @pytest.mark.asyncio
    async def test_transport_failure_is_unavailable(self):
        client, _ = make_client(ConnectionRefusedError("connection refused"))
        with pytest.raises(StoreUnavailable):
            await client.get_values("Pipeline!A1:L")

    @pytest.mark.asyncio
    async def test_rejected_write(self):
        client, _ = make_client(google_error(400, "Invalid values[0][3]"))
        with pytest.raises(StoreWriteError):
            await client.update_values("Pipeline!A3:L3", [["x"]])

    @pytest.mark.asyncio
    async def test_rejected_read_is_generic_store_error(self):
        client, _ = make_client(google_error(400, "Bad request"))
        with pytest.raises(StoreError) as exc:
            await client.get_values("Pipeline!A1:L")
        assert not isinstance(exc.value, StoreWriteError)
