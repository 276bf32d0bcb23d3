"""
ThemeForge Packager -- Install, Uninstall, Export

Install writes every artifact under <themes_dir>/<slug> and registers the
catalog entry last. Failures at any step leave no files and no entry.
"""

import asyncio
import io
import zipfile

import pytest

from themeforge.kernel.errors import ConflictError, PackagingError
from themeforge.kernel.packager import Packager
from themeforge.kernel.sinks import DirectorySink

from themeforge.kernel.tests.factories import build_theme


class FailingSink(DirectorySink):
    """Raises OSError after `fail_after` successful writes."""

    fail_after = 3

    async def write(self, path: str, data: bytes) -> None:
        if len(self.written) >= self.fail_after:
            raise OSError("disk full")
        await super().write(path, data)


class BrokenSink(DirectorySink):
    """Raises a non-OS error on the second write."""

    async def write(self, path: str, data: bytes) -> None:
        if self.written:
            raise RuntimeError("encoder crashed")
        await super().write(path, data)


class InterruptedCommitSink(DirectorySink):
    """Renames into place but never records the commit."""

    async def commit(self) -> str:
        await asyncio.to_thread(self.staging.rename, self.target)
        raise asyncio.CancelledError


class SlowSink(DirectorySink):
    async def write(self, path: str, data: bytes) -> None:
        await super().write(path, data)
        await asyncio.sleep(5)


def leftovers(root):
    return sorted(p.name for p in root.iterdir()) if root.exists() else []


class TestInstall:
    @pytest.mark.asyncio
    async def test_install_writes_files_and_registers(self, packager, catalog, tmp_path):
        result = await packager.install(build_theme())
        target = tmp_path / "themes" / "aurora"

        assert result.slug == "aurora"
        assert result.location == str(target)
        assert (target / "theme.json").is_file()
        assert "--color-primary: #123456" in (target / "assets" / "css" / "theme.css").read_text()
        assert (target / "templates" / "home.mustache").is_file()

        entry = await catalog.get("aurora")
        assert entry is not None
        assert entry.name == "Aurora"
        assert entry.version == "1.0.0"
        assert entry.author == "Studio North"
        assert leftovers(tmp_path / "themes") == ["aurora"]

    @pytest.mark.asyncio
    async def test_conflict_changes_nothing(self, packager, catalog, tmp_path):
        await packager.install(build_theme())
        before = sorted(str(p) for p in (tmp_path / "themes").rglob("*"))
        entries_before = await catalog.list()

        with pytest.raises(ConflictError):
            await packager.install(build_theme("aurora", theme_id="other", primary="#ffffff"))

        assert sorted(str(p) for p in (tmp_path / "themes").rglob("*")) == before
        assert await catalog.list() == entries_before
        css = (tmp_path / "themes" / "aurora" / "assets" / "css" / "theme.css").read_text()
        assert "#123456" in css

    @pytest.mark.asyncio
    async def test_write_failure_cleans_up(self, catalog, tmp_path):
        packager = Packager(catalog, tmp_path / "themes", sink_factory=FailingSink)

        with pytest.raises(PackagingError):
            await packager.install(build_theme())

        assert leftovers(tmp_path / "themes") == []
        assert await catalog.get("aurora") is None

    @pytest.mark.asyncio
    async def test_unexpected_write_error_cleans_up(self, catalog, tmp_path):
        packager = Packager(catalog, tmp_path / "themes", sink_factory=BrokenSink)

        with pytest.raises(PackagingError, match="encoder crashed"):
            await packager.install(build_theme())

        assert leftovers(tmp_path / "themes") == []
        assert await catalog.get("aurora") is None

    @pytest.mark.asyncio
    async def test_interrupted_rename_removes_target(self, catalog, tmp_path):
        packager = Packager(catalog, tmp_path / "themes", sink_factory=InterruptedCommitSink)

        with pytest.raises(asyncio.CancelledError):
            await packager.install(build_theme())

        assert leftovers(tmp_path / "themes") == []
        assert await catalog.get("aurora") is None

    @pytest.mark.asyncio
    async def test_timeout_cleans_up(self, catalog, tmp_path):
        packager = Packager(catalog, tmp_path / "themes", timeout_seconds=0.2, sink_factory=SlowSink)

        with pytest.raises(PackagingError, match="timed out"):
            await packager.install(build_theme())

        assert leftovers(tmp_path / "themes") == []
        assert await catalog.get("aurora") is None

    @pytest.mark.asyncio
    async def test_registration_failure_removes_files(self, tmp_path):
        class BrokenCatalog:
            async def get(self, slug):
                return None

            async def register(self, entry):
                raise RuntimeError("catalog offline")

        packager = Packager(BrokenCatalog(), tmp_path / "themes")
        with pytest.raises(PackagingError):
            await packager.install(build_theme())
        assert leftovers(tmp_path / "themes") == []

    @pytest.mark.asyncio
    async def test_install_uses_name_slug(self, packager):
        theme = build_theme("Aurora Dark!")
        theme.slug = "something-else"
        result = await packager.install(theme)
        assert result.slug == "aurora-dark"

    @pytest.mark.asyncio
    async def test_uninstall(self, packager, catalog, tmp_path):
        await packager.install(build_theme())
        await packager.uninstall("aurora")
        assert await catalog.get("aurora") is None
        assert not (tmp_path / "themes" / "aurora").exists()

    @pytest.mark.asyncio
    async def test_reinstall_after_uninstall(self, packager):
        await packager.install(build_theme())
        await packager.uninstall("aurora")
        result = await packager.install(build_theme())
        assert result.slug == "aurora"


class TestExport:
    @pytest.mark.asyncio
    async def test_export_contains_full_layout(self, packager):
        data = await packager.export(build_theme())
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            names = archive.namelist()
        assert "aurora/theme.json" in names
        assert "aurora/templates/home.mustache" in names
        assert "aurora/assets/css/theme.css" in names
        assert names == sorted(names)

    @pytest.mark.asyncio
    async def test_export_ignores_catalog(self, packager, catalog):
        await packager.install(build_theme())
        data = await packager.export(build_theme())
        assert data
        assert len(await catalog.list()) == 1
