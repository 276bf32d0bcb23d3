"""
ThemeForge Kernel - Artifact Sinks

One write interface, two targets:
  DirectorySink - files on disk under a staging directory, renamed into place on commit
  ArchiveSink   - zip archive built in memory

The packager streams the same ArtifactSet into either one. Generation never
knows which target it is writing to.
"""

from __future__ import annotations

import asyncio
import io
import logging
import shutil
import uuid
import zipfile
from pathlib import Path, PurePosixPath

from themeforge.kernel.errors import PackagingError

logger = logging.getLogger(__name__)

# Fixed zip entry timestamp so identical artifact sets give identical archives.
ARCHIVE_DATE_TIME = (1980, 1, 1, 0, 0, 0)


def _check_relative(path: str) -> PurePosixPath:
    rel = PurePosixPath(path)
    if rel.is_absolute() or ".." in rel.parts or not rel.parts:
        raise PackagingError(f"Refusing to write outside the theme root: {path!r}")
    return rel


class ArtifactSink:
    """Abstract artifact target."""

    async def write(self, path: str, data: bytes) -> None:
        """Write one artifact at a relative POSIX path."""
        raise NotImplementedError

    async def discard(self) -> None:
        """Best-effort removal of everything written so far."""
        raise NotImplementedError


class DirectorySink(ArtifactSink):
    """
    Writes into `<root>/.<name>.staging-<id>/` and renames the staging
    directory to `<root>/<name>` on commit(), so a half-written theme is
    never visible under its final name.
    """

    def __init__(self, root: Path | str, name: str) -> None:
        self.root = Path(root)
        self.name = name
        self.staging = self.root / f".{name}.staging-{uuid.uuid4().hex[:8]}"
        self.target = self.root / name
        self.written: list[str] = []
        self.committed = False

    async def write(self, path: str, data: bytes) -> None:
        rel = _check_relative(path)
        dest = self.staging.joinpath(*rel.parts)
        await asyncio.to_thread(self._write_file, dest, data)
        self.written.append(str(rel))

    @staticmethod
    def _write_file(dest: Path, data: bytes) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(data)

    async def commit(self) -> str:
        """Publish the staged files under the final name. Returns the location."""
        if self.target.exists():
            raise PackagingError(f"Theme directory already exists: {self.target}")
        await asyncio.to_thread(self.staging.rename, self.target)
        self.committed = True
        return str(self.target)

    async def discard(self) -> None:
        # A rename interrupted by a timeout can finish without setting committed.
        renamed = self.committed or (bool(self.written) and not self.staging.exists())
        for path in (self.staging, self.target if renamed else None):
            if path is None or not path.exists():
                continue
            try:
                await asyncio.to_thread(shutil.rmtree, path)
            except OSError as e:
                logger.warning("sinks: cleanup failed for %s: %s", path, e)
        self.written.clear()
        self.committed = False


class ArchiveSink(ArtifactSink):
    """
    Collects artifacts and builds a deterministic zip.
    Entries live under `<prefix>/` when a prefix is given.
    """

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix.strip("/")
        self.entries: dict[str, bytes] = {}

    async def write(self, path: str, data: bytes) -> None:
        rel = str(_check_relative(path))
        self.entries[f"{self.prefix}/{rel}" if self.prefix else rel] = data

    async def discard(self) -> None:
        self.entries.clear()

    def getvalue(self) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name in sorted(self.entries):
                info = zipfile.ZipInfo(name, date_time=ARCHIVE_DATE_TIME)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                archive.writestr(info, self.entries[name])
        return buffer.getvalue()
