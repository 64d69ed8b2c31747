#!/usr/bin/env python3
"""Synchronize a local build directory into a site bucket."""

import argparse
import sys
from pathlib import Path

import boto3

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from site_runtime.assets import build_manifest  # noqa: E402
from site_runtime.errors import ProvisioningError  # noqa: E402
from site_runtime.sync import AssetSynchronizer, needs_upload  # noqa: E402


def confirm_prune(keys: list[str]) -> bool:
  """Ask the operator before deleting orphaned objects."""
  print(f"{len(keys)} object(s) exist in the bucket but not locally:")
  for key in keys:
    print(f"  {key}")
  answer = input("Delete them? [y/N] ")
  return answer.strip().lower() in ("y", "yes")


def main() -> None:
  """Main entry point."""
  parser = argparse.ArgumentParser(description="Synchronize site assets into S3")
  parser.add_argument("bucket", help="Website bucket name")
  parser.add_argument(
    "--source",
    default="dist",
    help="Local asset directory (default: dist)",
  )
  parser.add_argument("--profile", help="AWS profile (default: AWS_PROFILE)")
  parser.add_argument(
    "--prune",
    action="store_true",
    help="Delete objects that no longer exist locally (asks first)",
  )
  parser.add_argument(
    "--yes",
    action="store_true",
    help="Do not ask before pruning",
  )
  parser.add_argument(
    "--dry-run",
    action="store_true",
    help="Only report what would change",
  )

  args = parser.parse_args()

  try:
    manifest = build_manifest(Path(args.source))
    s3 = boto3.Session(profile_name=args.profile).client("s3")
    synchronizer = AssetSynchronizer(s3, args.bucket)

    if args.dry_run:
      for entry in manifest:
        if needs_upload(entry, synchronizer.remote_object(entry.relative_key)):
          print(f"upload {entry.relative_key}")
      if args.prune:
        for key in synchronizer.orphans(manifest):
          print(f"delete {key}")
      return

    report = synchronizer.sync(manifest)
    if args.prune:
      report.deleted = synchronizer.prune(
        manifest,
        confirm=(lambda keys: True) if args.yes else confirm_prune,
      )
  except ProvisioningError as e:
    print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
    sys.exit(1)

  print(
    f"{len(report.uploaded)} uploaded, {len(report.skipped)} unchanged, "
    f"{len(report.deleted)} deleted, {len(report.failed)} failed"
  )
  for failure in report.failed:
    print(f"  failed: {failure}", file=sys.stderr)
  if report.failed:
    sys.exit(2)


if __name__ == "__main__":
  main()
