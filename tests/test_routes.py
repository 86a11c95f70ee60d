"""
Inventory Catalog Backend — API Endpoint Tests
===============================================

What:  End-to-end HTTP tests through create_app() with the test stores.
How:   httpx AsyncClient over ASGITransport; no server process.

What we test:
    ✅ Widget scenario: create → get → delete → 404
    ✅ Photo scenario: create with JPEG → replace with PNG → fetch PNG
    ✅ Status codes and error kinds for every failure class
    ✅ Out-of-range ids and over-long names are 400s, never 500s
    ✅ An empty file part means "no photo" on register and replace alike
    ✅ Search form fields, HTML forms, health check, request IDs
"""

from unittest.mock import patch

import pytest

from inventory_catalog.exceptions import StoreUnavailableError


async def register(client, name="Widget", description=None, photo=None, filename="w.jpg"):
    data = {"inventory_name": name}
    if description is not None:
        data["description"] = description
    files = {"photo": (filename, photo, "application/octet-stream")} if photo is not None else None
    return await client.post("/register", data=data, files=files)


class TestWidgetScenario:

    @pytest.mark.asyncio
    async def test_create_get_delete(self, test_client):
        created = await register(test_client, description="spare part")
        assert created.status_code == 201
        body = created.json()
        assert body["name"] == "Widget"
        assert body["description"] == "spare part"
        assert body["photo"] is None
        assert body["photo_url"] is None

        fetched = await test_client.get(f"/inventory/{body['id']}")
        assert fetched.status_code == 200
        assert fetched.json() == body

        deleted = await test_client.delete(f"/inventory/{body['id']}")
        assert deleted.status_code == 200
        assert deleted.json()["message"] == "Deleted successfully"

        gone = await test_client.get(f"/inventory/{body['id']}")
        assert gone.status_code == 404
        assert gone.json()["error"] == "not_found"

        again = await test_client.delete(f"/inventory/{body['id']}")
        assert again.status_code == 404


class TestPhotoScenario:

    @pytest.mark.asyncio
    async def test_replace_photo_serves_new_bytes(self, test_client, jpeg_bytes, png_bytes):
        created = await register(test_client, photo=jpeg_bytes)
        item = created.json()
        assert item["id"] == 1
        assert item["photo_url"] == "/inventory/1/photo"

        original = await test_client.get("/inventory/1/photo")
        assert original.status_code == 200
        assert original.content == jpeg_bytes
        assert original.headers["content-type"] == "image/jpeg"

        replaced = await test_client.put(
            "/inventory/1/photo",
            files={"photo": ("w.png", png_bytes, "image/png")},
        )
        assert replaced.status_code == 200
        assert replaced.json()["warnings"] == []
        assert replaced.json()["photo"] != item["photo"]

        current = await test_client.get("/inventory/1/photo")
        assert current.content == png_bytes
        assert current.headers["content-type"] == "image/png"

    @pytest.mark.asyncio
    async def test_no_photo_vs_unknown_item(self, test_client):
        item = (await register(test_client)).json()

        no_photo = await test_client.get(f"/inventory/{item['id']}/photo")
        unknown = await test_client.get("/inventory/999/photo")

        assert no_photo.status_code == 404
        assert no_photo.json()["error"] == "asset_not_found"
        assert unknown.status_code == 404
        assert unknown.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_broken_reference_has_its_own_error(self, test_client, asset_store, jpeg_bytes):
        item = (await register(test_client, photo=jpeg_bytes)).json()
        await asset_store.delete(item["photo"])

        response = await test_client.get(f"/inventory/{item['id']}/photo")

        assert response.status_code == 404
        assert response.json()["error"] == "asset_reference_broken"
        assert item["photo"] not in response.text

    @pytest.mark.asyncio
    async def test_replace_without_file(self, test_client):
        item = (await register(test_client)).json()

        response = await test_client.put(f"/inventory/{item['id']}/photo", data={})

        assert response.status_code == 400
        assert response.json()["message"] == "Bad Request: photo file required"

    @pytest.mark.asyncio
    async def test_replace_unknown_item(self, test_client, png_bytes):
        response = await test_client.put(
            "/inventory/999/photo",
            files={"photo": ("w.png", png_bytes, "image/png")},
        )
        assert response.status_code == 404


class TestRegisterAndUpdate:

    @pytest.mark.asyncio
    async def test_register_requires_name(self, test_client):
        response = await test_client.post("/register", data={"description": "no name"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "Bad Request: inventory_name is required"
        assert body["request_id"]

    @pytest.mark.asyncio
    async def test_partial_update(self, test_client):
        item = (await register(test_client, description="spare part")).json()

        response = await test_client.put(f"/inventory/{item['id']}", json={"inventory_name": "X"})

        assert response.status_code == 200
        assert response.json()["name"] == "X"
        assert response.json()["description"] == "spare part"

    @pytest.mark.asyncio
    async def test_update_unknown_item(self, test_client):
        response = await test_client.put("/inventory/5", json={"description": "d"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_non_integer_id_is_validation_error(self, test_client):
        response = await test_client.get("/inventory/abc")
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("item_id", ["0", "-1", "2147483648", "99999999999999999999"])
    async def test_out_of_range_id_is_validation_error(self, test_client, item_id):
        for method, path in (
            ("GET", f"/inventory/{item_id}"),
            ("GET", f"/inventory/{item_id}/photo"),
            ("DELETE", f"/inventory/{item_id}"),
        ):
            response = await test_client.request(method, path)
            assert response.status_code == 400
            assert response.json()["error"] == "validation_error"

        search = await test_client.post("/search", data={"id": item_id})
        assert search.status_code == 400
        assert search.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_largest_id_is_plain_not_found(self, test_client):
        response = await test_client.get("/inventory/2147483647")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_register_rejects_overlong_name(self, test_client, asset_store, jpeg_bytes):
        response = await register(test_client, name="x" * 256, photo=jpeg_bytes)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert await asset_store.list_refs() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filename", ["w.jpg", ""])
    async def test_empty_file_part_is_no_photo_everywhere(self, test_client, asset_store, filename):
        created = await register(test_client, photo=b"", filename=filename)

        assert created.status_code == 201
        assert created.json()["photo"] is None
        assert created.json()["photo_url"] is None

        replaced = await test_client.put(
            f"/inventory/{created.json()['id']}/photo",
            files={"photo": (filename, b"", "application/octet-stream")},
        )
        assert replaced.status_code == 400
        assert replaced.json()["message"] == "Bad Request: photo file required"
        assert await asset_store.list_refs() == []

    @pytest.mark.asyncio
    async def test_list(self, test_client, jpeg_bytes):
        assert (await test_client.get("/inventory")).json() == []
        await register(test_client, name="A")
        await register(test_client, name="B", photo=jpeg_bytes)

        items = (await test_client.get("/inventory")).json()

        assert [i["name"] for i in items] == ["A", "B"]
        assert items[0]["photo_url"] is None
        assert items[1]["photo_url"] == f"/inventory/{items[1]['id']}/photo"


class TestSearch:

    @pytest.mark.asyncio
    async def test_search_with_photo_hint(self, test_client, jpeg_bytes):
        item = (await register(test_client, photo=jpeg_bytes)).json()

        plain = await test_client.post("/search", data={"id": str(item["id"])})
        hinted = await test_client.post("/search", data={"id": str(item["id"]), "has_photo": "on"})

        assert plain.status_code == 200
        assert plain.json()["photo_url"] is None
        assert hinted.json()["photo_url"] == f"/inventory/{item['id']}/photo"

    @pytest.mark.asyncio
    async def test_search_unknown_id(self, test_client):
        response = await test_client.post("/search", data={"id": "77"})
        assert response.status_code == 404


class TestStoreOutage:

    @pytest.mark.asyncio
    async def test_record_store_down_is_503(self, test_client, record_store):
        with patch.object(
            record_store,
            "list_all",
            side_effect=StoreUnavailableError(store="record_store", context={"dsn": "secret"}),
        ):
            response = await test_client.get("/inventory")

        assert response.status_code == 503
        assert response.json()["error"] == "store_unavailable"
        assert "secret" not in response.text

    @pytest.mark.asyncio
    async def test_reclaim_warning_reported(self, test_client, asset_store, jpeg_bytes, png_bytes):
        item = (await register(test_client, photo=jpeg_bytes)).json()

        with patch.object(
            asset_store, "delete", side_effect=StoreUnavailableError(store="asset_store")
        ):
            response = await test_client.put(
                f"/inventory/{item['id']}/photo",
                files={"photo": ("w.png", png_bytes, "image/png")},
            )

        assert response.status_code == 200
        assert len(response.json()["warnings"]) == 1


class TestFormsAndHealth:

    @pytest.mark.asyncio
    async def test_forms_served(self, test_client):
        for path in ("/RegisterForm.html", "/SearchForm.html"):
            response = await test_client.get(path)
            assert response.status_code == 200
            assert response.headers["content-type"].startswith("text/html")

    @pytest.mark.asyncio
    async def test_missing_forms_dir(self, test_client, test_settings, tmp_path):
        test_settings.forms_dir = str(tmp_path / "nowhere")

        response = await test_client.get("/RegisterForm.html")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["storage"] == "writable"

    @pytest.mark.asyncio
    async def test_health_reports_database_down(self, test_client, record_store):
        with patch.object(record_store, "health_check", return_value=False):
            response = await test_client.get("/health")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/inventory", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_unknown_route(self, test_client):
        response = await test_client.get("/nope")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
