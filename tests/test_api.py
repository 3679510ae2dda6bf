"""HTTP-level tests against a SQLite database seeded by ``conftest.py``."""

import pytest
from fastapi.testclient import TestClient

from db_explorer.config import ApiConfig, AppConfig, DatabaseConfig
from db_explorer.handlers import CrudHandlers
from db_explorer.server.app import create_app

HUGE = "99999999999999999999999"


def get_item(client: TestClient, item_id: int) -> dict:
    response = client.get(f"/items/{item_id}")
    assert response.status_code == 200
    return response.json()["response"]["record"]


class TestListTables:
    def test_sorted_names(self, client: TestClient) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"response": {"tables": ["items", "notes", "users"]}}


class TestListRows:
    def test_all_rows_with_types(self, client: TestClient) -> None:
        response = client.get("/items")
        assert response.status_code == 200
        assert response.json() == {
            "response": {
                "records": [
                    {
                        "id": 1,
                        "title": "database/sql",
                        "description": "Talk about databases",
                        "price": None,
                        "updated": "rvasily",
                    },
                    {
                        "id": 2,
                        "title": "memcache",
                        "description": "Talk about memcache with an example",
                        "price": 9.5,
                        "updated": None,
                    },
                ]
            }
        }

    def test_limit_and_offset(self, client: TestClient) -> None:
        records = client.get("/items?limit=1").json()["response"]["records"]
        assert [r["id"] for r in records] == [1]

        records = client.get("/items?limit=1&offset=1").json()["response"]["records"]
        assert [r["id"] for r in records] == [2]

        records = client.get("/items?offset=1").json()["response"]["records"]
        assert [r["id"] for r in records] == [2]

        records = client.get("/items?offset=10").json()["response"]["records"]
        assert records == []

    def test_default_limit(self, client: TestClient) -> None:
        for n in range(6):
            response = client.put("/items/", json={"title": f"extra {n}", "description": "bulk"})
            assert response.status_code == 200

        records = client.get("/items").json()["response"]["records"]
        assert [r["id"] for r in records] == [1, 2, 3, 4, 5]

    def test_non_numeric_parameters_fall_back(self, client: TestClient) -> None:
        records = client.get("/items?limit=abc&offset=-1").json()["response"]["records"]
        assert [r["id"] for r in records] == [1, 2]

    def test_out_of_range_parameters_fall_back(self, client: TestClient) -> None:
        records = client.get(f"/items?limit={HUGE}&offset={HUGE}").json()["response"]["records"]
        assert [r["id"] for r in records] == [1, 2]

    def test_limit_capped_by_config(self, db_url: str) -> None:
        config = AppConfig(database=DatabaseConfig(url=db_url), api=ApiConfig(max_limit=1))
        with TestClient(create_app(config=config)) as capped:
            records = capped.get("/items?limit=5").json()["response"]["records"]
            assert [r["id"] for r in records] == [1]

            records = capped.get("/items?offset=1").json()["response"]["records"]
            assert [r["id"] for r in records] == [2]

    def test_unknown_table(self, client: TestClient) -> None:
        response = client.get("/unknown_table")
        assert response.status_code == 404
        assert response.json() == {"error": "unknown table"}

    def test_table_without_id_column(self, client: TestClient) -> None:
        response = client.get("/notes")
        assert response.json() == {"response": {"records": [{"body": "first"}]}}


class TestGetRow:
    def test_existing_record(self, client: TestClient) -> None:
        response = client.get("/items/2")
        assert response.status_code == 200
        assert response.json() == {
            "response": {
                "record": {
                    "id": 2,
                    "title": "memcache",
                    "description": "Talk about memcache with an example",
                    "price": 9.5,
                    "updated": None,
                }
            }
        }

    def test_declared_primary_key(self, client: TestClient) -> None:
        record = client.get("/users/1").json()["response"]["record"]
        assert record == {"user_id": 1, "login": "rvasily", "score": 10, "info": "none"}

    def test_missing_record(self, client: TestClient) -> None:
        response = client.get("/items/100500")
        assert response.status_code == 404
        assert response.json() == {"error": "record not found"}

    def test_out_of_range_id(self, client: TestClient) -> None:
        response = client.get(f"/items/{HUGE}")
        assert response.status_code == 404
        assert response.json() == {"error": "record not found"}

    def test_unknown_table(self, client: TestClient) -> None:
        response = client.get("/unknown_table/1")
        assert response.status_code == 404
        assert response.json() == {"error": "unknown table"}

    def test_table_without_id_column(self, client: TestClient) -> None:
        response = client.get("/notes/1")
        assert response.status_code == 400
        assert response.json() == {"error": "unknown id column"}


class TestInsertRow:
    def test_insert_returns_new_id(self, client: TestClient) -> None:
        response = client.put("/items/", json={"title": "db_crud", "description": ""})
        assert response.status_code == 200
        assert response.json() == {"response": {"id": 3}}

        assert get_item(client, 3) == {
            "id": 3,
            "title": "db_crud",
            "description": "",
            "price": None,
            "updated": None,
        }

    def test_id_and_unknown_fields_ignored(self, client: TestClient) -> None:
        response = client.put(
            "/items/",
            json={"id": 42, "title": "x", "description": "y", "unknown_field": 1, "price": 3},
        )
        assert response.json() == {"response": {"id": 3}}
        assert client.get("/items/42").status_code == 404
        assert get_item(client, 3)["price"] == 3.0

    def test_missing_required_fields_get_zero_value(self, client: TestClient) -> None:
        response = client.put("/items/", json={"title": "only title"})
        assert response.status_code == 200
        assert get_item(client, 3)["description"] == ""

    def test_response_key_follows_id_column(self, client: TestClient) -> None:
        response = client.put("/users/", json={"login": "alice", "score": 7})
        assert response.json() == {"response": {"user_id": 2}}

    def test_invalid_field_rejected(self, client: TestClient) -> None:
        response = client.put("/items/", json={"title": 42, "description": "y"})
        assert response.status_code == 400
        assert response.json() == {"error": "field title have invalid type"}
        assert len(client.get("/items").json()["response"]["records"]) == 2

    def test_invalid_field_substituted_when_lenient(self, lenient_client: TestClient) -> None:
        response = lenient_client.put("/items/", json={"title": 42, "description": "y"})
        assert response.status_code == 200
        assert response.json() == {"response": {"id": 3}}
        record = lenient_client.get("/items/3").json()["response"]["record"]
        assert record["title"] == ""

    def test_malformed_body(self, client: TestClient) -> None:
        response = client.put("/items/", content=b"{not json")
        assert response.status_code == 400
        assert "error" in response.json()

        response = client.put("/items/", json=[1, 2])
        assert response.status_code == 400

    def test_unknown_table(self, client: TestClient) -> None:
        response = client.put("/unknown_table/", json={"title": "x"})
        assert response.status_code == 404
        assert response.json() == {"error": "unknown table"}


class TestUpdateRow:
    def test_update_fields(self, client: TestClient) -> None:
        response = client.post("/items/1", json={"title": "new title", "updated": None, "price": 12})
        assert response.status_code == 200
        assert response.json() == {"response": {"updated": 1}}

        record = get_item(client, 1)
        assert record["title"] == "new title"
        assert record["updated"] is None
        assert record["price"] == 12.0

    def test_wrong_type_leaves_row_untouched(self, client: TestClient) -> None:
        before = get_item(client, 1)
        response = client.post("/items/1", json={"description": "changed", "title": 42})
        assert response.status_code == 400
        assert response.json() == {"error": "field title have invalid type"}
        assert get_item(client, 1) == before

    def test_null_for_required_column(self, client: TestClient) -> None:
        response = client.post("/items/1", json={"title": None})
        assert response.status_code == 400
        assert response.json() == {"error": "field title have invalid type"}

    def test_id_column_cannot_change(self, client: TestClient) -> None:
        response = client.post("/items/1", json={"id": 4})
        assert response.status_code == 400
        assert response.json() == {"error": "field id have invalid type"}

        response = client.post("/users/1", json={"user_id": 4})
        assert response.json() == {"error": "field user_id have invalid type"}

    def test_unknown_field(self, client: TestClient) -> None:
        response = client.post("/items/1", json={"nope": 1})
        assert response.status_code == 400
        assert response.json() == {"error": "field nope have invalid type"}

    def test_missing_record(self, client: TestClient) -> None:
        response = client.post("/items/100500", json={"title": "x"})
        assert response.status_code == 404
        assert response.json() == {"error": "record not found"}

    def test_out_of_range_id(self, client: TestClient) -> None:
        response = client.post(f"/items/{HUGE}", json={"title": "x"})
        assert response.status_code == 404
        assert response.json() == {"error": "record not found"}

    def test_out_of_range_value(self, client: TestClient) -> None:
        response = client.post("/items/1", json={"price": 10**30})
        assert response.status_code == 400
        assert response.json() == {"error": "field price have invalid type"}

    def test_bool_for_float_column(self, client: TestClient) -> None:
        response = client.post("/items/1", json={"price": True})
        assert response.json() == {"response": {"updated": 1}}
        assert get_item(client, 1)["price"] == 1.0

    def test_empty_body(self, client: TestClient) -> None:
        response = client.post("/items/1", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "no fields to update"}

    def test_malformed_body(self, client: TestClient) -> None:
        response = client.post("/items/1", content=b"not json")
        assert response.status_code == 400


class TestDeleteRow:
    def test_delete_existing(self, client: TestClient) -> None:
        response = client.delete("/items/1")
        assert response.status_code == 200
        assert response.json() == {"response": {"deleted": 1}}
        assert client.get("/items/1").status_code == 404

    def test_delete_is_idempotent(self, client: TestClient) -> None:
        assert client.delete("/items/2").json() == {"response": {"deleted": 1}}
        assert client.delete("/items/2").json() == {"response": {"deleted": 0}}

    def test_delete_missing(self, client: TestClient) -> None:
        response = client.delete("/items/100500")
        assert response.status_code == 200
        assert response.json() == {"response": {"deleted": 0}}

    def test_delete_out_of_range_id(self, client: TestClient) -> None:
        response = client.delete(f"/items/{HUGE}")
        assert response.status_code == 200
        assert response.json() == {"response": {"deleted": 0}}


class TestRouting:
    def test_unknown_route(self, client: TestClient) -> None:
        for method, path in [("PATCH", "/items/1"), ("GET", "/items/"), ("POST", "/")]:
            response = client.request(method, path)
            assert response.status_code == 404
            assert response.json() == {"error": "unknown route"}

    def test_request_id_echoed(self, client: TestClient) -> None:
        response = client.get("/", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_generated(self, client: TestClient) -> None:
        response = client.get("/")
        assert response.headers["X-Request-ID"]

    def test_unexpected_error_returns_json(
        self, app_config: AppConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def explode(self, request):
            raise RuntimeError("boom")

        monkeypatch.setattr(CrudHandlers, "list_tables", explode)
        with TestClient(create_app(config=app_config), raise_server_exceptions=False) as broken:
            response = broken.get("/")

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {"error": "internal error"}
