"""Integration tests for theme CRUD, packaging and preview routes (/api/themes)."""

from __future__ import annotations

import io
import zipfile

import pytest

from themeforge.kernel.tests.factories import THEME_ID

pytestmark = pytest.mark.asyncio


async def create_theme(client, headers, name: str = "Bloom", **extra) -> dict:
    res = await client.post("/api/themes", json={"name": name, **extra}, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()


# ── CRUD ────────────────────────────────────────────────────────────────────


class TestThemeCrud:
    async def test_list_unauthenticated(self, async_client):
        res = await async_client.get("/api/themes")
        assert res.status_code == 401

    async def test_list(self, async_client, auth_headers):
        res = await async_client.get("/api/themes", headers=auth_headers)
        assert res.status_code == 200
        [summary] = res.json()
        assert summary["id"] == THEME_ID
        assert summary["name"] == "Aurora"
        assert summary["pageCount"] == 2
        assert summary["isActive"] is False

    async def test_create_with_default_home_page(self, async_client, auth_headers):
        theme = await create_theme(async_client, auth_headers, "Bloom Shop")
        assert theme["slug"] == "bloom-shop"
        assert theme["ownerId"] == "user-alice"
        assert [(p["slug"], p["isHomePage"]) for p in theme["pages"]] == [("home", True)]

        res = await async_client.get(f"/api/themes/{theme['id']}", headers=auth_headers)
        assert res.json()["name"] == "Bloom Shop"

    async def test_create_with_pages(self, async_client, auth_headers):
        theme = await create_theme(
            async_client,
            auth_headers,
            pages=[{"name": "Home", "slug": "home", "isHomePage": True}, {"name": "Shop", "slug": "shop"}],
            settings={"colors": {"primary": "#ff0000"}},
        )
        assert [p["slug"] for p in theme["pages"]] == ["home", "shop"]
        assert theme["settings"] == {"colors": {"primary": "#ff0000"}}

    async def test_create_duplicate_name(self, async_client, auth_headers):
        res = await async_client.post("/api/themes", json={"name": "Aurora"}, headers=auth_headers)
        assert res.status_code == 409

    async def test_create_duplicate_slug(self, async_client, auth_headers):
        await create_theme(async_client, auth_headers, "Nova Shop")
        res = await async_client.post("/api/themes", json={"name": "nova shop!"}, headers=auth_headers)
        assert res.status_code == 409

    async def test_create_two_home_pages(self, async_client, auth_headers):
        res = await async_client.post(
            "/api/themes",
            json={
                "name": "Twins",
                "pages": [
                    {"name": "A", "slug": "a", "isHomePage": True},
                    {"name": "B", "slug": "b", "isHomePage": True},
                ],
            },
            headers=auth_headers,
        )
        assert res.status_code == 422

    async def test_create_bad_page_slug(self, async_client, auth_headers):
        res = await async_client.post(
            "/api/themes",
            json={"name": "Bad", "pages": [{"name": "Bad", "slug": "Not A Slug"}]},
            headers=auth_headers,
        )
        assert res.status_code == 422

    async def test_get_missing(self, async_client, auth_headers):
        res = await async_client.get("/api/themes/missing", headers=auth_headers)
        assert res.status_code == 404

    async def test_activate_and_delete(self, async_client, auth_headers):
        res = await async_client.post(f"/api/themes/{THEME_ID}/activate", headers=auth_headers)
        assert res.status_code == 200
        assert res.json()["isActive"] is True

        res = await async_client.delete(f"/api/themes/{THEME_ID}", headers=auth_headers)
        assert res.status_code == 409

        other = await create_theme(async_client, auth_headers)
        await async_client.post(f"/api/themes/{other['id']}/activate", headers=auth_headers)
        res = await async_client.delete(f"/api/themes/{THEME_ID}", headers=auth_headers)
        assert res.status_code == 200
        assert res.json() == {"deleted": THEME_ID}

        res = await async_client.get(f"/api/themes/{THEME_ID}", headers=auth_headers)
        assert res.status_code == 404


class TestThemeUpdate:
    async def test_rename_moves_slug(self, async_client, auth_headers):
        res = await async_client.patch(
            f"/api/themes/{THEME_ID}", json={"name": "Aurora Night", "description": "Dark"}, headers=auth_headers
        )
        assert res.status_code == 200
        summary = res.json()
        assert summary["name"] == "Aurora Night"
        assert summary["slug"] == "aurora-night"
        assert summary["description"] == "Dark"

    async def test_rename_conflict(self, async_client, auth_headers):
        other = await create_theme(async_client, auth_headers, "Bloom")
        for name in ("Aurora", "AURORA"):
            res = await async_client.patch(f"/api/themes/{other['id']}", json={"name": name}, headers=auth_headers)
            assert res.status_code == 409

        res = await async_client.get(f"/api/themes/{other['id']}", headers=auth_headers)
        assert res.json()["name"] == "Bloom"

    async def test_default_is_exclusive(self, async_client, auth_headers):
        other = await create_theme(async_client, auth_headers, "Bloom")
        await async_client.patch(f"/api/themes/{THEME_ID}", json={"isDefault": True}, headers=auth_headers)
        res = await async_client.patch(f"/api/themes/{other['id']}", json={"isDefault": True}, headers=auth_headers)
        assert res.json()["isDefault"] is True

        listed = (await async_client.get("/api/themes", headers=auth_headers)).json()
        assert [t["name"] for t in listed if t["isDefault"]] == ["Bloom"]

        res = await async_client.patch(f"/api/themes/{other['id']}", json={"isDefault": False}, headers=auth_headers)
        assert res.json()["isDefault"] is False

    async def test_update_missing(self, async_client, auth_headers):
        res = await async_client.patch("/api/themes/missing", json={"name": "X"}, headers=auth_headers)
        assert res.status_code == 404

    async def test_update_rejects_unknown_fields(self, async_client, auth_headers):
        res = await async_client.patch(f"/api/themes/{THEME_ID}", json={"isActive": True}, headers=auth_headers)
        assert res.status_code == 422


class TestThemeDuplicate:
    async def test_duplicate_names(self, async_client, auth_headers):
        first = await async_client.post(f"/api/themes/{THEME_ID}/duplicate", headers=auth_headers)
        second = await async_client.post(f"/api/themes/{THEME_ID}/duplicate", headers=auth_headers)
        assert first.status_code == 201
        assert first.json()["name"] == "Aurora (Copy)"
        assert second.json()["name"] == "Aurora (Copy 1)"
        assert second.json()["slug"] == "aurora-copy-1"

    async def test_duplicate_copies_pages_with_fresh_ids(self, async_client, auth_headers):
        await async_client.post(f"/api/themes/{THEME_ID}/activate", headers=auth_headers)
        res = await async_client.post(f"/api/themes/{THEME_ID}/duplicate", headers=auth_headers)
        copy = res.json()
        source = (await async_client.get(f"/api/themes/{THEME_ID}", headers=auth_headers)).json()

        assert copy["id"] != THEME_ID
        assert copy["isActive"] is False
        assert copy["isDefault"] is False
        assert copy["ownerId"] == "user-alice"
        assert copy["settings"] == source["settings"]
        assert [p["slug"] for p in copy["pages"]] == [p["slug"] for p in source["pages"]]
        source_ids = {b["id"] for p in source["pages"] for b in p["blocks"]}
        copied = [b for p in copy["pages"] for b in p["blocks"]]
        assert len(copied) == len(source_ids)
        assert not source_ids & {b["id"] for b in copied}

    async def test_duplicate_with_requested_name(self, async_client, auth_headers):
        res = await async_client.post(
            f"/api/themes/{THEME_ID}/duplicate", json={"name": "Aurora"}, headers=auth_headers
        )
        assert res.json()["name"] == "Aurora (1)"

    async def test_duplicate_missing(self, async_client, auth_headers):
        res = await async_client.post("/api/themes/missing/duplicate", headers=auth_headers)
        assert res.status_code == 404


# ── packaging ───────────────────────────────────────────────────────────────


class TestInstallRoutes:
    async def test_install(self, async_client, auth_headers, tmp_path):
        res = await async_client.post(
            f"/api/themes/{THEME_ID}/install", json={"version": "2.0.0"}, headers=auth_headers
        )
        assert res.status_code == 201
        body = res.json()
        assert body["slug"] == "aurora"
        assert body["entry"]["version"] == "2.0.0"
        assert body["entry"]["themeId"] == THEME_ID
        assert "theme.json" in body["files"]
        assert (tmp_path / "themes" / "aurora" / "theme.json").is_file()

        res = await async_client.get("/api/themes/catalog", headers=auth_headers)
        assert [e["slug"] for e in res.json()] == ["aurora"]

    async def test_install_without_body(self, async_client, auth_headers):
        res = await async_client.post(f"/api/themes/{THEME_ID}/install", headers=auth_headers)
        assert res.status_code == 201
        assert res.json()["entry"]["version"] == "1.0.0"

    async def test_install_conflict(self, async_client, auth_headers, tmp_path):
        await async_client.post(f"/api/themes/{THEME_ID}/install", headers=auth_headers)
        res = await async_client.post(f"/api/themes/{THEME_ID}/install", headers=auth_headers)
        assert res.status_code == 409
        assert sorted(p.name for p in (tmp_path / "themes").iterdir()) == ["aurora"]

    async def test_uninstall(self, async_client, auth_headers, tmp_path):
        await async_client.post(f"/api/themes/{THEME_ID}/install", headers=auth_headers)

        res = await async_client.delete("/api/themes/catalog/aurora", headers=auth_headers)
        assert res.status_code == 200
        assert not (tmp_path / "themes" / "aurora").exists()

        res = await async_client.delete("/api/themes/catalog/aurora", headers=auth_headers)
        assert res.status_code == 404


class TestExportImportRoutes:
    async def test_export(self, async_client, auth_headers):
        res = await async_client.get(f"/api/themes/{THEME_ID}/export", headers=auth_headers)
        assert res.status_code == 200
        assert res.headers["content-type"] == "application/zip"
        assert res.headers["content-disposition"] == 'attachment; filename="aurora.zip"'

        names = zipfile.ZipFile(io.BytesIO(res.content)).namelist()
        assert "aurora/theme.json" in names
        assert "aurora/templates/home.mustache" in names

    async def test_export_then_import(self, async_client, auth_headers):
        archive = (await async_client.get(f"/api/themes/{THEME_ID}/export", headers=auth_headers)).content

        res = await async_client.post(
            "/api/themes/import",
            content=archive,
            headers={**auth_headers, "Content-Type": "application/zip"},
        )
        assert res.status_code == 201
        theme = res.json()
        assert theme["name"] == "Aurora (Imported 1)"
        assert theme["id"] != THEME_ID
        assert theme["isActive"] is False
        assert theme["ownerId"] == "user-alice"

        listed = (await async_client.get("/api/themes", headers=auth_headers)).json()
        assert sorted(t["name"] for t in listed) == ["Aurora", "Aurora (Imported 1)"]

    async def test_import_empty_body(self, async_client, auth_headers):
        res = await async_client.post("/api/themes/import", content=b"", headers=auth_headers)
        assert res.status_code == 422

    async def test_import_not_a_zip(self, async_client, auth_headers):
        res = await async_client.post("/api/themes/import", content=b"plain text", headers=auth_headers)
        assert res.status_code == 422
        assert res.json()["detail"] == "Not a theme archive"


# ── compiled output ─────────────────────────────────────────────────────────


class TestCompiledOutputRoutes:
    async def test_manifest(self, async_client, auth_headers):
        res = await async_client.get(f"/api/themes/{THEME_ID}/manifest", headers=auth_headers)
        assert res.status_code == 200
        manifest = res.json()
        assert manifest["name"] == "Aurora"
        assert "home" in manifest["templates"]

    async def test_stylesheet(self, async_client, auth_headers):
        res = await async_client.get(f"/api/themes/{THEME_ID}/files/assets/css/theme.css", headers=auth_headers)
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/css")
        assert "--color-primary: #123456" in res.text

    async def test_missing_file(self, async_client, auth_headers):
        res = await async_client.get(f"/api/themes/{THEME_ID}/files/nope.txt", headers=auth_headers)
        assert res.status_code == 404

    async def test_preview(self, async_client, auth_headers):
        res = await async_client.get(f"/api/themes/{THEME_ID}/preview/home", headers=auth_headers)
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/html")
        assert "Welcome" in res.text
        assert "Why Aurora" in res.text
        assert "Log in" in res.text
        assert "{{" not in res.text
        assert f'href="/api/themes/{THEME_ID}/files/assets/css/theme.css"' in res.text

    async def test_preview_unknown_template(self, async_client, auth_headers):
        res = await async_client.get(f"/api/themes/{THEME_ID}/preview/nope", headers=auth_headers)
        assert res.status_code == 404

    async def test_preview_with_listings(self, async_client, auth_headers):
        theme = await create_theme(async_client, auth_headers)
        res = await async_client.post(
            f"/api/themes/{theme['id']}/preview/home",
            json={
                "listings": {"featuredProducts": [{"id": "p1", "name": "Desk Lamp", "slug": "lamp", "price": "20"}]},
                "signedIn": True,
            },
            headers=auth_headers,
        )
        assert res.status_code == 200
        assert "Desk Lamp" in res.text
        assert "Alice" in res.text
        assert "Log out" in res.text
