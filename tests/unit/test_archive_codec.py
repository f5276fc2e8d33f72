"""Unit tests for the chart archive codec."""

from __future__ import annotations

import io
import tarfile

import pytest
import yaml

from chart_registry.domain.models import Maintainer
from chart_registry.services.archive_codec import ArchiveDecodeError, TarArchiveCodec
from tests.chart_fixtures import (
    EXTERNAL_CHART_YAML,
    build_archive,
    build_external_chart,
    read_chart_yaml,
    read_members,
)


def _tar_gz(entries: dict) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, content in entries.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))
    return buf.getvalue()


def test_decode_restores_encoded_archive(codec: TarArchiveCodec) -> None:
    """Decoding an encoded archive should yield the same archive."""
    archive = build_archive("nginx", "1.2.3", values="image:\n  tag: stable\n")
    archive.metadata.maintainers = [Maintainer(name="ops", email="ops@example.com")]
    archive.metadata.app_version = "1.25"

    decoded = codec.decode(codec.encode(archive))

    assert decoded == archive


def test_encode_is_deterministic(codec: TarArchiveCodec) -> None:
    """Encoding the same archive twice should produce identical bytes."""
    archive = build_archive("nginx", "1.2.3")

    assert codec.encode(archive) == codec.encode(archive)


def test_decode_reads_chart_built_elsewhere(codec: TarArchiveCodec) -> None:
    """Archives built by other tools should decode, with values optional."""
    data = _tar_gz(
        {
            "redis/Chart.yaml": b"apiVersion: v1\nname: redis\nversion: 0.4.0\n",
            "redis/templates/svc.yaml": b"kind: Service\n",
        }
    )

    archive = codec.decode(data)

    assert archive.metadata.identity() == ("redis", "0.4.0")
    assert archive.metadata.api_version == "v1"
    assert archive.values == ""
    assert [f.path for f in archive.files] == ["templates/svc.yaml"]


def test_decode_rejects_non_archive_bytes(codec: TarArchiveCodec) -> None:
    """Random bytes should not decode."""
    with pytest.raises(ArchiveDecodeError):
        codec.decode(b"definitely not a chart")


def test_decode_rejects_archive_without_chart_yaml(codec: TarArchiveCodec) -> None:
    """Chart.yaml is mandatory."""
    data = _tar_gz({"redis/values.yaml": b"a: 1\n"})

    with pytest.raises(ArchiveDecodeError):
        codec.decode(data)


def test_decode_rejects_chart_yaml_without_version(codec: TarArchiveCodec) -> None:
    """Chart.yaml must carry name and version."""
    data = _tar_gz({"redis/Chart.yaml": b"name: redis\n"})

    with pytest.raises(ArchiveDecodeError):
        codec.decode(data)


def test_decode_rejects_several_top_level_directories(codec: TarArchiveCodec) -> None:
    """A chart archive holds exactly one chart directory."""
    data = _tar_gz(
        {
            "a/Chart.yaml": b"name: a\nversion: 1.0.0\n",
            "b/Chart.yaml": b"name: b\nversion: 1.0.0\n",
        }
    )

    with pytest.raises(ArchiveDecodeError):
        codec.decode(data)


def test_reencoding_keeps_chart_yaml_of_foreign_chart(codec: TarArchiveCodec) -> None:
    """Manifest keys without a model field should survive decode and encode unchanged."""
    archive = codec.decode(build_external_chart())

    assert archive.metadata.model_extra["kubeVersion"] == ">=1.20"
    assert read_chart_yaml(codec.encode(archive)) == yaml.safe_load(EXTERNAL_CHART_YAML)


def test_reencoding_keeps_file_modes_and_symlinks(codec: TarArchiveCodec) -> None:
    """Executable bits and symbolic links of payload files should be carried through."""
    members = read_members(codec.encode(codec.decode(build_external_chart())))

    assert members["p1/scripts/migrate.sh"].mode == 0o755
    assert members["p1/templates/deployment.yaml"].mode == 0o644
    assert members["p1/templates/service.yaml"].issym()
    assert members["p1/templates/service.yaml"].linkname == "deployment.yaml"


def test_decode_rejects_device_entries(codec: TarArchiveCodec) -> None:
    """Only files, directories and links belong in a chart archive."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        chart = b"name: redis\nversion: 1.0.0\n"
        info = tarfile.TarInfo(name="redis/Chart.yaml")
        info.size = len(chart)
        tar.addfile(info, io.BytesIO(chart))
        fifo = tarfile.TarInfo(name="redis/pipe")
        fifo.type = tarfile.FIFOTYPE
        tar.addfile(fifo)

    with pytest.raises(ArchiveDecodeError):
        codec.decode(buf.getvalue())
