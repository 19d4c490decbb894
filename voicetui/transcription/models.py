"""Whisper model registry and local model file management."""

import os
import asyncio
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

import aiohttp

from ..exceptions import ConfigError, NetworkError, StorageError
from ..models.events import DownloadProgress

logger = logging.getLogger(__name__)

DEFAULT_MODELS_DIR = Path.home() / ".voice-tui" / "models"
DEFAULT_BASE_URL = "https://huggingface.co/ggerganov/whisper.cpp/resolve/main"
DEFAULT_MODEL = "small"

# name -> (size label, display label, english only)
WHISPER_MODELS: Mapping[str, Tuple[str, str, bool]] = MappingProxyType({
    # Tiny models - Fastest, lowest accuracy
    "tiny": ("39 MB", "Tiny", False),
    "tiny.en": ("39 MB", "Tiny (English)", True),
    # Base models - Very fast, low accuracy
    "base": ("74 MB", "Base", False),
    "base.en": ("74 MB", "Base (English)", True),
    # Small models - Fast, moderate accuracy (recommended)
    "small": ("244 MB", "Small", False),
    "small.en": ("244 MB", "Small (English)", True),
    # Medium models - Medium speed, good accuracy
    "medium": ("769 MB", "Medium", False),
    "medium.en": ("769 MB", "Medium (English)", True),
    # Large models - Slow, best accuracy
    "large-v1": ("1550 MB", "Large v1", False),
    "large": ("1550 MB", "Large v3", False),
    "large-v3-turbo": ("1550 MB", "Large v3 Turbo", False),
})

ProgressCallback = Callable[[DownloadProgress], None]


@dataclass(frozen=True)
class ModelDescriptor:
    """Where a model comes from and where it lives on disk."""
    name: str
    size_label: str
    download_url: str
    local_path: Path
    label: str = ""
    english_only: bool = False


def build_registry(models_dir: Union[str, Path] = DEFAULT_MODELS_DIR,
                   base_url: str = DEFAULT_BASE_URL) -> Mapping[str, ModelDescriptor]:
    """Build the immutable name -> descriptor mapping for a models directory."""
    models_dir = Path(models_dir).expanduser()
    base_url = base_url.rstrip("/")
    registry = {
        name: ModelDescriptor(
            name=name,
            size_label=size_label,
            download_url=f"{base_url}/ggml-{name}.bin",
            local_path=models_dir / f"ggml-{name}.bin",
            label=label,
            english_only=english_only,
        )
        for name, (size_label, label, english_only) in WHISPER_MODELS.items()
    }
    return MappingProxyType(registry)


class ModelAssetStore:
    """Tracks which models exist locally and downloads missing ones.

    Presence is always re-checked on disk. Downloads of the same model are
    serialized with a per-name lock; a caller that waited on the lock finds the
    finished file and returns without downloading again.
    """

    def __init__(
        self,
        models_dir: Union[str, Path] = DEFAULT_MODELS_DIR,
        base_url: str = DEFAULT_BASE_URL,
        read_chunk_size: int = 64 * 1024,
        read_timeout: float = 60.0,
    ):
        """Initialize model store.

        Args:
            models_dir: Directory holding ggml-<name>.bin files
            base_url: URL prefix the model files are fetched from
            read_chunk_size: Bytes per streamed read
            read_timeout: Seconds to wait for each read before failing
        """
        self.models_dir = Path(models_dir).expanduser()
        self.registry = build_registry(self.models_dir, base_url)
        self.read_chunk_size = read_chunk_size
        self.read_timeout = read_timeout

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

        logger.info(f"ModelAssetStore initialized with models_dir: {self.models_dir}")

    def descriptor(self, model_name: str) -> ModelDescriptor:
        """Look up a registered model.

        Raises:
            ConfigError: If the name is not registered
        """
        try:
            return self.registry[model_name]
        except KeyError:
            raise ConfigError(
                f"Unknown model '{model_name}'. Available: {', '.join(self.registry)}"
            ) from None

    def is_present(self, model_name: str) -> bool:
        """True if a non-empty model file exists. Read errors count as absent."""
        path = self.descriptor(model_name).local_path
        try:
            return path.is_file() and path.stat().st_size > 0
        except OSError as e:
            logger.debug(f"Cannot access {path}: {e}")
            return False

    def size_on_disk(self, model_name: str) -> int:
        path = self.descriptor(model_name).local_path
        try:
            return path.stat().st_size
        except OSError:
            return 0

    def list_models(self) -> List[Tuple[ModelDescriptor, bool]]:
        """All registered models with their current presence."""
        return [(d, self.is_present(name)) for name, d in self.registry.items()]

    def delete(self, model_name: str) -> bool:
        """Remove a downloaded model. Returns False if it was not present."""
        path = self.descriptor(model_name).local_path
        with self._lock_for(model_name):
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            except OSError as e:
                raise StorageError(f"Failed to delete model {model_name}: {e}") from e
        logger.info(f"Deleted model: {path}")
        return True

    def _lock_for(self, model_name: str) -> threading.Lock:
        with self._locks_guard:
            if model_name not in self._locks:
                self._locks[model_name] = threading.Lock()
            return self._locks[model_name]

    def download(self, model_name: str, on_progress: Optional[ProgressCallback] = None,
                 force: bool = False) -> Path:
        """Download a model to its local path.

        A model that is already present is left alone unless force is set.

        Args:
            model_name: Registered model name
            on_progress: Called after every received chunk
            force: Download again even if the file exists

        Returns:
            Path of the model file

        Raises:
            ConfigError: Unknown model name
            NetworkError: Connection failure or bad HTTP status
            StorageError: Directory or file could not be written
        """
        model = self.descriptor(model_name)

        with self._lock_for(model_name):
            if not force and self.is_present(model_name):
                logger.info(f"Model already present, skipping download: {model.local_path}")
                return model.local_path

            logger.info(f"Downloading Whisper model: {model_name}")
            logger.info(f"URL: {model.download_url}")
            logger.info(f"Destination: {model.local_path}")
            asyncio.run(self._download_async(model, on_progress))

        logger.info(f"Model downloaded successfully: {model.local_path}")
        return model.local_path

    async def _download_async(self, model: ModelDescriptor, on_progress: Optional[ProgressCallback]) -> None:
        """Stream the model into a .part file and move it into place on success."""
        try:
            model.local_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create model directory {model.local_path.parent}: {e}") from e

        part_path = model.local_path.with_name(model.local_path.name + ".part")
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=30, sock_read=self.read_timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(model.download_url) as response:
                    if response.status != 200:
                        raise NetworkError(
                            f"Failed to download {model.name}: {response.status} {response.reason}"
                        )

                    total_bytes = response.content_length or 0
                    downloaded_bytes = 0
                    with open(part_path, "wb") as f:
                        async for chunk in response.content.iter_chunked(self.read_chunk_size):
                            f.write(chunk)
                            downloaded_bytes += len(chunk)
                            if on_progress:
                                percent = (downloaded_bytes / total_bytes * 100) if total_bytes > 0 else None
                                on_progress(DownloadProgress(
                                    downloaded_bytes=downloaded_bytes,
                                    total_bytes=total_bytes,
                                    percent=percent,
                                ))

            if downloaded_bytes == 0:
                raise NetworkError(f"Empty response body for {model.download_url}")
            if total_bytes and downloaded_bytes != total_bytes:
                raise NetworkError(
                    f"Incomplete download of {model.name}: {downloaded_bytes}/{total_bytes} bytes"
                )

            os.replace(part_path, model.local_path)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._discard(part_path)
            raise NetworkError(f"Failed to download model {model.name}: {e}") from e
        except OSError as e:
            self._discard(part_path)
            raise StorageError(f"Failed to write model {model.name}: {e}") from e
        except BaseException:
            self._discard(part_path)
            raise

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial download {path}: {e}")
