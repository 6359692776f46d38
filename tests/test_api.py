import json
import os

API = "/api/v1"


def create(client, auth_headers, template_id="news-lt", kind="lowerThird"):
    r = client.post(
        f"{API}/templates",
        json={"kind": kind, "id": template_id, "name": "News Lower Third"},
        headers=auth_headers,
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["templates"] == 0


def test_mutations_require_token(client, auth_headers):
    r = client.post(f"{API}/templates", json={"id": "x", "name": "X"})
    assert r.status_code in (401, 403)
    r = client.post(
        f"{API}/templates",
        json={"id": "x", "name": "X"},
        headers={"Authorization": "Bearer wrong-token"},
    )
    assert r.status_code == 401


def test_create_list_get_delete(client, auth_headers):
    created = create(client, auth_headers)
    assert created["manifest"]["id"] == "news-lt"

    listing = client.get(f"{API}/templates").json()
    assert listing == [
        {
            "id": "news-lt",
            "name": "News Lower Third",
            "description": "",
            "element_count": 3,
            "current": True,
            "artifact_cached": False,
        }
    ]
    assert client.get(f"{API}/templates/news-lt").json()["elements"][0]["id"] == "background"

    r = client.post(
        f"{API}/templates", json={"id": "news-lt", "name": "Again"}, headers=auth_headers
    )
    assert r.status_code == 409

    assert client.delete(f"{API}/templates/news-lt", headers=auth_headers).status_code == 200
    assert client.get(f"{API}/templates/news-lt").status_code == 404


def test_create_rejects_bad_slug(client, auth_headers):
    r = client.post(f"{API}/templates", json={"id": "Bad Slug", "name": "X"}, headers=auth_headers)
    assert r.status_code == 422


def test_element_editing_flow(client, auth_headers):
    create(client, auth_headers)
    r = client.post(
        f"{API}/templates/news-lt/elements", json={"type": "rect", "x": 10}, headers=auth_headers
    )
    assert r.status_code == 201
    element = r.json()
    assert element["id"] == "element_1"
    assert element["x"] == 10
    assert element["width"] == 100

    r = client.patch(
        f"{API}/templates/news-lt/elements/element_1",
        json={"y": 42, "style": {"backgroundColor": "#ff0000"}},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.json()["y"] == 42
    assert r.json()["style"]["backgroundColor"] == "#ff0000"

    r = client.patch(
        f"{API}/templates/news-lt/elements/missing", json={"y": 1}, headers=auth_headers
    )
    assert r.status_code == 404

    r = client.delete(f"{API}/templates/news-lt/elements/element_1", headers=auth_headers)
    assert r.status_code == 200
    artifact = client.get(f"{API}/templates/news-lt/artifact")
    assert artifact.headers["content-type"].startswith("text/javascript")
    assert "element_1" not in artifact.text


def test_properties_manifest_and_animation(client, auth_headers):
    create(client, auth_headers)
    r = client.post(
        f"{API}/templates/news-lt/properties",
        json={"name": "subtitle", "title": "Subtitle"},
        headers=auth_headers,
    )
    assert r.status_code == 201
    assert r.json() == {"subtitle": {"type": "string", "title": "Subtitle"}}

    r = client.patch(
        f"{API}/templates/news-lt/manifest", json={"description": "Evening news"}, headers=auth_headers
    )
    assert r.json()["description"] == "Evening news"

    r = client.patch(
        f"{API}/templates/news-lt/animation", json={"slideInDuration": 1200}, headers=auth_headers
    )
    assert r.json()["slideInDuration"] == 1200
    r = client.patch(
        f"{API}/templates/news-lt/animation", json={"slideInDuration": -5}, headers=auth_headers
    )
    assert r.status_code == 422
    assert '"slideInDuration": 1200' in client.get(f"{API}/templates/news-lt/artifact").text

    r = client.delete(f"{API}/templates/news-lt/properties/subtitle", headers=auth_headers)
    assert r.status_code == 200
    r = client.delete(f"{API}/templates/news-lt/properties/subtitle", headers=auth_headers)
    assert r.status_code == 404


def test_export_formats_and_reimport(client, auth_headers):
    create(client, auth_headers)
    files = client.get(f"{API}/templates/news-lt/export").json()
    assert set(files) == {"news-lt.ograf.json", "template.mjs"}

    bundle = client.get(
        f"{API}/templates/news-lt/export", params={"format": "bundle", "export_date": "2026-01-01T00:00:00Z"}
    ).json()
    assert bundle["exportDate"] == "2026-01-01T00:00:00Z"
    assert client.get(f"{API}/templates/news-lt/export", params={"format": "zip"}).status_code == 422

    document = client.get(f"{API}/templates/news-lt/export", params={"format": "template"}).json()
    r = client.post(
        f"{API}/templates/import", json={"document": document, "policy": "rename"}, headers=auth_headers
    )
    assert r.status_code == 200
    assert r.json() == {"imported": ["news-lt-2"], "count": 1}

    multi = client.post(
        f"{API}/templates/bundle", json={"template_ids": ["news-lt", "news-lt-2"]}
    ).json()
    assert list(multi["templates"]) == ["news-lt", "news-lt-2"]


def test_import_manifest_and_bad_document(client, auth_headers):
    r = client.post(
        f"{API}/templates/import",
        json={"manifest": {"id": "imported", "name": "Imported Lower Third"}},
        headers=auth_headers,
    )
    assert r.json() == {"imported": ["imported"], "count": 1}
    r = client.post(f"{API}/templates/import", json={"document": {"x": 1}}, headers=auth_headers)
    assert r.status_code == 422
    r = client.post(f"{API}/templates/import", json={}, headers=auth_headers)
    assert r.status_code == 422


def test_export_files_to_disk(client, auth_headers, operator_config):
    create(client, auth_headers)
    r = client.post(f"{API}/templates/news-lt/export/files", headers=auth_headers)
    assert r.status_code == 200
    export_dir = os.path.join(operator_config.get("storage.export_dir"), "news-lt")
    assert sorted(os.listdir(export_dir)) == ["news-lt.ograf.json", "template.mjs"]
    with open(os.path.join(export_dir, "news-lt.ograf.json"), encoding="utf-8") as f:
        assert json.load(f)["id"] == "news-lt"


def test_validate_and_current(client, auth_headers):
    create(client, auth_headers, "first")
    create(client, auth_headers, "second")
    assert client.get(f"{API}/templates/first/validate").json()["isValid"] is True
    assert client.post(f"{API}/templates/first/current", headers=auth_headers).json() == {"current": "first"}
    listing = {t["id"]: t["current"] for t in client.get(f"{API}/templates").json()}
    assert listing == {"first": True, "second": False}
    assert client.post(f"{API}/templates/nope/current", headers=auth_headers).status_code == 404


def test_preview_flow(client, auth_headers):
    create(client, auth_headers)
    preview = f"{API}/templates/news-lt/preview"

    assert client.get(preview).status_code == 409

    r = client.post(f"{preview}/load")
    assert r.json()["state"] == "hidden"
    assert r.json()["outcome"] == "completed"

    r = client.post(f"{preview}/update", json={"data": {"name": "Alice"}})
    assert r.json()["data"] == {"name": "Alice"}

    r = client.post(f"{preview}/play", json={"skip_animation": True})
    body = r.json()
    assert body["outcome"] == "skipped"
    assert body["state"] == "visible"
    assert body["pendingTimers"] == 0
    assert ">Alice</div>" in body["html"]

    r = client.post(f"{preview}/stop")
    body = r.json()
    assert body["state"] == "animatingOut"
    assert body["pendingTimers"] == 1
    assert body["outcome"] is None

    r = client.post(f"{preview}/play", json={"skip_animation": True})
    assert r.json()["state"] == "visible"
    assert r.json()["pendingTimers"] == 0

    r = client.post(f"{preview}/custom", json={"name": "explode"})
    assert r.json()["outcome"] == "noop"
    assert client.post(f"{preview}/custom", json={}).status_code == 422

    r = client.post(f"{preview}/dispose")
    assert r.json()["state"] == "disposed"
    assert client.post(f"{preview}/unmount").json() == {"unmounted": True}


def test_edits_refresh_mounted_preview(client, auth_headers):
    create(client, auth_headers)
    preview = f"{API}/templates/news-lt/preview"
    client.post(f"{preview}/play", json={"skip_animation": True})
    client.patch(
        f"{API}/templates/news-lt/elements/title",
        json={"content": "Live edit"},
        headers=auth_headers,
    )
    assert "Live edit" in client.get(preview).json()["html"]


def test_templates_persist_across_app_restart(operator_config, auth_headers):
    from fastapi.testclient import TestClient

    from fastapi_app import create_app

    with TestClient(create_app(config=operator_config)) as first:
        create(first, auth_headers, "kept")
    with TestClient(create_app(config=operator_config)) as second:
        assert [t["id"] for t in second.get(f"{API}/templates").json()] == ["kept"]
        assert second.get("/healthz").json()["templates"] == 1
