"""Custom resource: mirror the packaged site assets into the site bucket."""

import logging
import tempfile
import zipfile
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import ClientError

from ..assets import build_manifest
from ..errors import error_code
from ..sync import AssetSynchronizer

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def _is_true(value: Any) -> bool:
  return str(value).lower() == "true"


def _physical_id(props: dict[str, Any]) -> str:
  return f"{props['DestinationBucket']}-assets"


def _sync(props: dict[str, Any]) -> dict[str, Any]:
  s3 = boto3.client("s3")
  with tempfile.TemporaryDirectory() as workdir:
    archive = Path(workdir) / "assets.zip"
    s3.download_file(props["SourceBucket"], props["SourceKey"], str(archive))
    tree = Path(workdir) / "tree"
    with zipfile.ZipFile(archive) as zf:
      zf.extractall(tree)
    manifest = build_manifest(tree)
    report = AssetSynchronizer(s3, props["DestinationBucket"]).sync(manifest)

  for failure in report.failed:
    logger.warning("Not synchronized: %s", failure)
  return {"PhysicalResourceId": _physical_id(props), "Data": report.summary()}


def _bucket_exists(s3: Any, bucket_name: str) -> bool:
  try:
    s3.head_bucket(Bucket=bucket_name)
  except ClientError as e:
    if error_code(e) in ("404", "NoSuchBucket", "NotFound"):
      return False
    raise
  return True


def _delete(event: dict[str, Any]) -> dict[str, Any]:
  props = event["ResourceProperties"]
  bucket_name = props["DestinationBucket"]
  if _is_true(props.get("ForceDestroy")):
    s3 = boto3.client("s3")
    if _bucket_exists(s3, bucket_name):
      deleted = AssetSynchronizer(s3, bucket_name).empty()
      logger.info("Emptied %s (%d objects)", bucket_name, deleted)
  return {"PhysicalResourceId": event["PhysicalResourceId"]}


def on_event(event: dict[str, Any], context: Any) -> dict[str, Any]:
  request_type = event["RequestType"]
  logger.info("%s assets for %s", request_type, event["ResourceProperties"].get("DestinationBucket"))
  if request_type in ("Create", "Update"):
    return _sync(event["ResourceProperties"])
  if request_type == "Delete":
    return _delete(event)
  raise ValueError(f"Unknown request type: {request_type}")
