"""Manifest of local site assets: object keys, content types and fingerprints."""

import hashlib
import logging
import stat
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path, PurePath, PurePosixPath

from .errors import AssetReadError, ConfigurationError

logger = logging.getLogger(__name__)

OBJECT_KEY_SEPARATOR = "/"

# Stored as user metadata on every uploaded object.
FINGERPRINT_METADATA_KEY = "content-sha256"

# Content type for extensions missing from CONTENT_TYPES: no ContentType is sent.
UNSET_CONTENT_TYPE: str | None = None

CONTENT_TYPES: dict[str, str] = {
  ".html": "text/html",
  ".htm": "text/html",
  ".css": "text/css",
  ".js": "application/javascript",
  ".mjs": "application/javascript",
  ".map": "application/json",
  ".json": "application/json",
  ".webmanifest": "application/manifest+json",
  ".xml": "application/xml",
  ".txt": "text/plain",
  ".csv": "text/csv",
  ".md": "text/markdown",
  ".pdf": "application/pdf",
  ".wasm": "application/wasm",
  ".png": "image/png",
  ".jpg": "image/jpeg",
  ".jpeg": "image/jpeg",
  ".gif": "image/gif",
  ".svg": "image/svg+xml",
  ".ico": "image/x-icon",
  ".webp": "image/webp",
  ".avif": "image/avif",
  ".woff": "font/woff",
  ".woff2": "font/woff2",
  ".ttf": "font/ttf",
  ".otf": "font/otf",
  ".eot": "application/vnd.ms-fontobject",
  ".mp4": "video/mp4",
  ".webm": "video/webm",
  ".mp3": "audio/mpeg",
  ".ogg": "audio/ogg",
}


@dataclass(frozen=True)
class AssetManifestEntry:
  """One local file and the object it becomes."""

  relative_key: str
  source_path: str
  content_type: str | None
  content_fingerprint: str


@dataclass
class AssetManifest:
  """All assets found under a root, plus the files that could not be read."""

  root: str
  entries: list[AssetManifestEntry] = field(default_factory=list)
  failures: list[AssetReadError] = field(default_factory=list)

  def __iter__(self) -> Iterator[AssetManifestEntry]:
    return iter(self.entries)

  def __len__(self) -> int:
    return len(self.entries)

  @property
  def keys(self) -> set[str]:
    return {entry.relative_key for entry in self.entries}


def object_key(relative_path: PurePath | str) -> str:
  """Object key for a path relative to the asset root."""
  parts = PurePath(relative_path).parts
  return OBJECT_KEY_SEPARATOR.join(parts)


def relative_path_for(key: str) -> PurePosixPath:
  """Inverse of object_key."""
  return PurePosixPath(*key.split(OBJECT_KEY_SEPARATOR))


def content_type_for(path: PurePath | str) -> str | None:
  return CONTENT_TYPES.get(PurePath(path).suffix.lower(), UNSET_CONTENT_TYPE)


def fingerprint(path: Path | str, chunk_size: int = 1024 * 1024) -> str:
  """SHA-256 hex digest of a file's contents."""
  digest = hashlib.sha256()
  with open(path, "rb") as f:
    for chunk in iter(lambda: f.read(chunk_size), b""):
      digest.update(chunk)
  return digest.hexdigest()


def _is_regular_file(path: Path) -> bool:
  return stat.S_ISREG(path.lstat().st_mode)


def build_manifest(root: Path | str) -> AssetManifest:
  """Describe every regular file under root.

  Unreadable files are recorded in manifest.failures and skipped; they never
  abort the walk.

  Raises:
    ConfigurationError: root does not exist or is not a directory.
  """
  root_path = Path(root)
  if not root_path.is_dir():
    raise ConfigurationError("asset directory does not exist", resource=str(root_path))

  manifest = AssetManifest(root=str(root_path))
  for path in sorted(root_path.rglob("*")):
    try:
      if not _is_regular_file(path):
        continue
      entry = AssetManifestEntry(
        relative_key=object_key(path.relative_to(root_path)),
        source_path=str(path),
        content_type=content_type_for(path),
        content_fingerprint=fingerprint(path),
      )
    except OSError as e:
      failure = AssetReadError(str(path), e.strerror or str(e))
      logger.warning("Skipping asset: %s", failure)
      manifest.failures.append(failure)
      continue
    manifest.entries.append(entry)

  manifest.entries.sort(key=lambda entry: entry.relative_key)
  logger.info(
    "Manifest for %s: %d assets, %d unreadable",
    root_path,
    len(manifest.entries),
    len(manifest.failures),
  )
  return manifest
