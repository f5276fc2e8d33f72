"""
Chart archive codec.

A chart archive is a gzip-compressed tar with a single top-level directory
(named after the chart) holding:

* ``Chart.yaml``  - chart metadata (required)
* ``values.yaml`` - default configuration values (optional)
* any number of payload files (templates, docs, ...), carried opaquely

Payload files keep their permission bits and symbolic links keep their
target. Encoding is deterministic: fixed mtimes, fixed owners and sorted
payload, so re-encoding a decoded archive produces stable bytes.
"""
from __future__ import annotations

import gzip
import io
import logging
import posixpath
import tarfile
import zlib
from abc import ABC, abstractmethod
from typing import Dict, List

import yaml
from pydantic import ValidationError

from chart_registry.domain.models import ArchiveFile, DecodedArchive, Metadata

logger = logging.getLogger(__name__)

CHART_FILE = "Chart.yaml"
VALUES_FILE = "values.yaml"
FILE_MODE = 0o644


class ArchiveDecodeError(Exception):
    """Raised when bytes are not a valid chart archive."""


class ArchiveEncodeError(Exception):
    """Raised when an archive cannot be serialized."""


class ArchiveCodec(ABC):
    """
    Abstract bidirectional transform between archive bytes and DecodedArchive.
    """

    @abstractmethod
    def decode(self, data: bytes) -> DecodedArchive:
        """Decode archive bytes. Raises ArchiveDecodeError."""

    @abstractmethod
    def encode(self, archive: DecodedArchive) -> bytes:
        """Encode an archive. Raises ArchiveEncodeError."""


class TarArchiveCodec(ArchiveCodec):

    def decode(self, data: bytes) -> DecodedArchive:
        try:
            with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
                entries = self._read_entries(tar)
        except (tarfile.TarError, OSError, EOFError, KeyError, zlib.error) as e:
            raise ArchiveDecodeError(f"not a gzip tar archive: {e}") from e

        chart_file = entries.pop(CHART_FILE, None)
        if chart_file is None or chart_file.link_target is not None:
            raise ArchiveDecodeError(f"archive has no {CHART_FILE}")

        try:
            raw = yaml.safe_load(chart_file.content.decode("utf-8"))
        except (UnicodeDecodeError, yaml.YAMLError) as e:
            raise ArchiveDecodeError(f"unreadable {CHART_FILE}: {e}") from e
        if not isinstance(raw, dict):
            raise ArchiveDecodeError(f"{CHART_FILE} is not a mapping")
        try:
            metadata = Metadata.model_validate(raw)
        except ValidationError as e:
            raise ArchiveDecodeError(f"invalid {CHART_FILE}: {e}") from e

        values = ""
        values_file = entries.pop(VALUES_FILE, None)
        if values_file is not None:
            try:
                values = values_file.content.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ArchiveDecodeError(f"unreadable {VALUES_FILE}: {e}") from e

        files = tuple(entries[path] for path in sorted(entries))
        return DecodedArchive(metadata=metadata, values=values, files=files)

    def encode(self, archive: DecodedArchive) -> bytes:
        root = archive.metadata.name
        try:
            chart_yaml = yaml.safe_dump(
                archive.metadata.to_manifest(),
                sort_keys=False,
                default_flow_style=False,
                allow_unicode=True,
            )
        except yaml.YAMLError as e:
            raise ArchiveEncodeError(f"cannot serialize metadata of {root}: {e}") from e

        members: List[ArchiveFile] = [
            ArchiveFile(path=CHART_FILE, content=chart_yaml.encode("utf-8")),
            ArchiveFile(path=VALUES_FILE, content=archive.values.encode("utf-8")),
        ]
        members.extend(sorted(archive.files, key=lambda f: f.path))

        buf = io.BytesIO()
        with gzip.GzipFile(fileobj=buf, mode="wb", mtime=0) as gz:
            with tarfile.open(fileobj=gz, mode="w", format=tarfile.GNU_FORMAT) as tar:
                for member in members:
                    info = tarfile.TarInfo(name=f"{root}/{member.path}")
                    info.mtime = 0
                    info.mode = member.mode
                    if member.link_target is not None:
                        info.type = tarfile.SYMTYPE
                        info.linkname = member.link_target
                        tar.addfile(info)
                    else:
                        info.size = len(member.content)
                        tar.addfile(info, io.BytesIO(member.content))
        return buf.getvalue()

    def _read_entries(self, tar: tarfile.TarFile) -> Dict[str, ArchiveFile]:
        """
        Read entries keyed by their path below the top-level directory.

        Directories are implied by the paths of their contents and skipped.
        Hard links are read as the file they point to.
        """
        entries: Dict[str, ArchiveFile] = {}
        roots = set()
        for member in tar.getmembers():
            if member.isdir():
                continue
            if not (member.isfile() or member.islnk() or member.issym()):
                raise ArchiveDecodeError(f"unsupported archive entry {member.name!r}")
            name = member.name[2:] if member.name.startswith("./") else member.name
            path = posixpath.normpath(name)
            if path.startswith("/") or path.startswith("..") or "/" not in path:
                raise ArchiveDecodeError(f"unexpected archive entry {member.name!r}")
            root, relative = path.split("/", 1)
            roots.add(root)
            mode = member.mode & 0o7777

            if member.issym():
                entries[relative] = ArchiveFile(path=relative, mode=mode, link_target=member.linkname)
                continue
            extracted = tar.extractfile(member)
            if extracted is None:
                raise ArchiveDecodeError(f"unreadable archive entry {member.name!r}")
            entries[relative] = ArchiveFile(path=relative, content=extracted.read(), mode=mode)

        if len(roots) > 1:
            raise ArchiveDecodeError(f"archive has several top-level directories: {sorted(roots)}")
        return entries
