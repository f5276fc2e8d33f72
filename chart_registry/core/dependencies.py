
import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from chart_registry.domain.models import RegistryConfig
from chart_registry.services.archive_codec import ArchiveCodec, TarArchiveCodec
from chart_registry.services.metadata_service import MetadataService
from chart_registry.storage.backend import StorageBackend
from chart_registry.storage.file_backend import FileStorageBackend

logger = logging.getLogger(__name__)

DATA_ROOT_ENV_VAR = "CHART_REGISTRY_DATA_DIR"
CONFIG_FILE = "registry.json"
_REPO_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_DATA_DIR = _REPO_ROOT / "data"

_config: Optional[RegistryConfig] = None
_codec: Optional[ArchiveCodec] = None
_backend: Optional[StorageBackend] = None
_service: Optional[MetadataService] = None

def get_data_dir() -> Path:
    env_path = os.environ.get(DATA_ROOT_ENV_VAR)
    if env_path:
        d = Path(env_path).expanduser()
    else:
        d = _DEFAULT_DATA_DIR
    d.mkdir(parents=True, exist_ok=True)
    return d

def load_config(data_dir: Path) -> RegistryConfig:
    """
    Load registry.json, merging with defaults for any missing fields,
    and write it back so any new fields are persisted.
    """
    path = data_dir / CONFIG_FILE
    config = RegistryConfig()
    if path.exists():
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            config = RegistryConfig(**raw)
        except (ValueError, TypeError, ValidationError) as e:
            # Unparseable config falls back to defaults and is overwritten.
            logger.warning(f"Ignoring invalid {path}: {e}")

    path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
    return config

def get_config() -> RegistryConfig:
    global _config
    if _config is None:
        _config = load_config(get_data_dir())
    return _config

def get_codec() -> ArchiveCodec:
    global _codec
    if _codec is None:
        _codec = TarArchiveCodec()
    return _codec

def get_backend() -> StorageBackend:
    global _backend
    if _backend is None:
        _backend = FileStorageBackend(get_data_dir(), get_codec())
    return _backend

def get_service() -> MetadataService:
    global _service
    if _service is None:
        _service = MetadataService(get_backend(), get_codec())
    return _service
