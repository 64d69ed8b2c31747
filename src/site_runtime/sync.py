"""Mirror an asset manifest into an S3 bucket, one object per file."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from botocore.exceptions import ClientError

from .assets import FINGERPRINT_METADATA_KEY, AssetManifest, AssetManifestEntry
from .errors import AssetReadError, ProviderError, error_code, from_client_error

logger = logging.getLogger(__name__)

# delete_objects accepts at most this many keys per call.
DELETE_BATCH_SIZE = 1000

_MISSING_OBJECT_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


@dataclass(frozen=True)
class RemoteObject:
  """What the bucket currently holds at a key."""

  fingerprint: str | None
  content_type: str | None


@dataclass
class SyncReport:
  """Outcome of one synchronization run."""

  uploaded: list[str] = field(default_factory=list)
  skipped: list[str] = field(default_factory=list)
  deleted: list[str] = field(default_factory=list)
  failed: list[AssetReadError] = field(default_factory=list)

  @property
  def writes(self) -> int:
    return len(self.uploaded) + len(self.deleted)

  def summary(self) -> dict[str, str]:
    """Counts as strings, the form custom resource responses accept."""
    return {
      "Uploaded": str(len(self.uploaded)),
      "Skipped": str(len(self.skipped)),
      "Deleted": str(len(self.deleted)),
      "Failed": str(len(self.failed)),
    }


def needs_upload(entry: AssetManifestEntry, remote: RemoteObject | None) -> bool:
  """An object is (re)written only when it is missing or its content changed."""
  if remote is None:
    return True
  if remote.fingerprint != entry.content_fingerprint:
    return True
  return entry.content_type is not None and remote.content_type != entry.content_type


class AssetSynchronizer:
  """Upload changed assets to a bucket, keyed by their relative path."""

  def __init__(self, s3_client: Any, bucket_name: str) -> None:
    self._s3 = s3_client
    self.bucket_name = bucket_name

  def remote_object(self, key: str) -> RemoteObject | None:
    try:
      response = self._s3.head_object(Bucket=self.bucket_name, Key=key)
    except ClientError as e:
      if error_code(e) in _MISSING_OBJECT_CODES:
        return None
      raise from_client_error(e, resource=f"s3://{self.bucket_name}/{key}") from e
    return RemoteObject(
      fingerprint=response.get("Metadata", {}).get(FINGERPRINT_METADATA_KEY),
      content_type=response.get("ContentType"),
    )

  def upload(self, entry: AssetManifestEntry) -> None:
    extra: dict[str, Any] = {"Metadata": {FINGERPRINT_METADATA_KEY: entry.content_fingerprint}}
    if entry.content_type is not None:
      extra["ContentType"] = entry.content_type
    with open(entry.source_path, "rb") as body:
      try:
        self._s3.put_object(Bucket=self.bucket_name, Key=entry.relative_key, Body=body, **extra)
      except ClientError as e:
        raise from_client_error(e, resource=f"s3://{self.bucket_name}/{entry.relative_key}") from e

  def sync(self, manifest: AssetManifest) -> SyncReport:
    """Converge the bucket towards the manifest without deleting anything."""
    report = SyncReport(failed=list(manifest.failures))
    for entry in manifest:
      if not needs_upload(entry, self.remote_object(entry.relative_key)):
        report.skipped.append(entry.relative_key)
        continue
      try:
        self.upload(entry)
      except OSError as e:
        failure = AssetReadError(entry.source_path, e.strerror or str(e))
        logger.warning("Upload skipped: %s", failure)
        report.failed.append(failure)
        continue
      logger.info("Uploaded s3://%s/%s", self.bucket_name, entry.relative_key)
      report.uploaded.append(entry.relative_key)

    logger.info(
      "Synchronized %s: %d uploaded, %d unchanged, %d failed",
      self.bucket_name,
      len(report.uploaded),
      len(report.skipped),
      len(report.failed),
    )
    return report

  def remote_keys(self) -> set[str]:
    keys: set[str] = set()
    paginator = self._s3.get_paginator("list_objects_v2")
    try:
      for page in paginator.paginate(Bucket=self.bucket_name):
        keys.update(item["Key"] for item in page.get("Contents", []))
    except ClientError as e:
      raise from_client_error(e, resource=f"s3://{self.bucket_name}") from e
    return keys

  def orphans(self, manifest: AssetManifest) -> list[str]:
    """Remote keys with no counterpart in the manifest."""
    return sorted(self.remote_keys() - manifest.keys)

  def delete(self, keys: list[str]) -> list[str]:
    deleted: list[str] = []
    for start in range(0, len(keys), DELETE_BATCH_SIZE):
      batch = keys[start : start + DELETE_BATCH_SIZE]
      try:
        response = self._s3.delete_objects(
          Bucket=self.bucket_name,
          Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
        )
      except ClientError as e:
        raise from_client_error(e, resource=f"s3://{self.bucket_name}") from e
      errors = response.get("Errors", [])
      if errors:
        first = errors[0]
        raise ProviderError(
          f"could not delete {len(errors)} object(s)",
          resource=f"s3://{self.bucket_name}/{first.get('Key', '')}",
          provider_message=first.get("Message"),
        )
      deleted.extend(batch)
    return deleted

  def prune(
    self,
    manifest: AssetManifest,
    confirm: Callable[[list[str]], bool],
  ) -> list[str]:
    """Delete orphaned objects, but only when confirm approves the exact list."""
    orphans = self.orphans(manifest)
    if not orphans:
      return []
    if not confirm(orphans):
      logger.info("Prune of %d object(s) declined", len(orphans))
      return []
    deleted = self.delete(orphans)
    logger.info("Deleted %d orphaned object(s) from %s", len(deleted), self.bucket_name)
    return deleted

  def empty(self) -> int:
    """Delete every object in the bucket. Returns the number deleted."""
    return len(self.delete(sorted(self.remote_keys())))
