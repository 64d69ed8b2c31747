"""Pytest fixtures for CDK construct and runtime tests."""

import io
import zipfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import aws_cdk as cdk
import pytest
from botocore.exceptions import ClientError


@pytest.fixture(autouse=True)
def aws_environment(monkeypatch: pytest.MonkeyPatch) -> None:
  """Keep tests away from real credentials and profiles."""
  monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
  monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
  monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
  monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def app() -> cdk.App:
  """Create a CDK App for testing."""
  return cdk.App()


@pytest.fixture
def stack(app: cdk.App) -> cdk.Stack:
  """Create a CDK Stack for testing."""
  return cdk.Stack(app, "TestStack", env=cdk.Environment(region="us-east-1"))


@pytest.fixture
def asset_dir(tmp_path: Path) -> Path:
  """A small built site: index.html, app.js and img/logo.png."""
  root = tmp_path / "dist"
  (root / "img").mkdir(parents=True)
  (root / "index.html").write_text("<html><body>hello</body></html>")
  (root / "app.js").write_text("console.log('hello');")
  (root / "img" / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\nlogo")
  return root


def _client_error(code: str, message: str = "", operation: str = "Operation") -> ClientError:
  return ClientError({"Error": {"Code": code, "Message": message}}, operation)


@pytest.fixture
def make_client_error() -> Callable[..., ClientError]:
  """Build a botocore ClientError with the given code."""
  return _client_error


class _Paginator:
  def __init__(self, s3: "FakeS3") -> None:
    self._s3 = s3

  def paginate(self, Bucket: str) -> Iterator[dict[str, Any]]:
    keys = sorted(self._s3.bucket(Bucket))
    page_size = 2
    for start in range(0, max(len(keys), 1), page_size):
      page = keys[start : start + page_size]
      yield {"Contents": [{"Key": key} for key in page]} if page else {}


class FakeS3:
  """In-memory stand-in for the subset of the S3 client the runtime uses."""

  def __init__(self) -> None:
    self.buckets: dict[str, dict[str, dict[str, Any]]] = {}
    self.archives: dict[tuple[str, str], bytes] = {}
    self.put_calls: list[dict[str, Any]] = []
    self.delete_calls: list[list[str]] = []

  def create_bucket(self, name: str) -> None:
    self.buckets.setdefault(name, {})

  def bucket(self, name: str) -> dict[str, dict[str, Any]]:
    if name not in self.buckets:
      raise _client_error("NoSuchBucket", f"The bucket {name} does not exist")
    return self.buckets[name]

  def add_archive(self, bucket: str, key: str, root: Path) -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
      for path in sorted(root.rglob("*")):
        if path.is_file():
          zf.write(path, path.relative_to(root).as_posix())
    self.archives[(bucket, key)] = buffer.getvalue()

  def head_bucket(self, Bucket: str) -> dict[str, Any]:
    if Bucket not in self.buckets:
      raise _client_error("404", "Not Found", "HeadBucket")
    return {}

  def head_object(self, Bucket: str, Key: str) -> dict[str, Any]:
    stored = self.bucket(Bucket).get(Key)
    if stored is None:
      raise _client_error("404", "Not Found", "HeadObject")
    response: dict[str, Any] = {"Metadata": dict(stored["Metadata"])}
    if stored["ContentType"] is not None:
      response["ContentType"] = stored["ContentType"]
    return response

  def put_object(self, Bucket: str, Key: str, Body: Any, **kwargs: Any) -> dict[str, Any]:
    objects = self.bucket(Bucket)
    self.put_calls.append({"Bucket": Bucket, "Key": Key, **kwargs})
    objects[Key] = {
      "Body": Body.read(),
      "Metadata": dict(kwargs.get("Metadata", {})),
      "ContentType": kwargs.get("ContentType"),
    }
    return {}

  def get_paginator(self, operation: str) -> _Paginator:
    assert operation == "list_objects_v2"
    return _Paginator(self)

  def delete_objects(self, Bucket: str, Delete: dict[str, Any]) -> dict[str, Any]:
    objects = self.bucket(Bucket)
    keys = [item["Key"] for item in Delete["Objects"]]
    self.delete_calls.append(keys)
    for key in keys:
      objects.pop(key, None)
    return {}

  def download_file(self, Bucket: str, Key: str, Filename: str) -> None:
    Path(Filename).write_bytes(self.archives[(Bucket, Key)])


@pytest.fixture
def fake_s3() -> FakeS3:
  """Empty in-memory S3 with a 'site-bucket' bucket."""
  s3 = FakeS3()
  s3.create_bucket("site-bucket")
  return s3


class FakeClock:
  """Monotonic clock that only moves when sleep is called."""

  def __init__(self) -> None:
    self.now = 0.0
    self.sleeps: list[float] = []

  def __call__(self) -> float:
    return self.now

  def sleep(self, seconds: float) -> None:
    self.sleeps.append(seconds)
    self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
  """Fake clock whose sleep advances time instantly."""
  return FakeClock()


def _as_list(value: Any) -> list[Any]:
  return value if isinstance(value, list) else [value]


def _grants_read(policy: dict[str, Any], source_arn: Any, principal: str = "cloudfront.amazonaws.com") -> bool:
  """Whether the policy lets principal read objects on behalf of source_arn.

  Only Allow statements with a service principal and a StringEquals
  AWS:SourceArn condition are understood. source_arn may be a synthesized
  intrinsic such as {"Fn::Join": ...}.
  """
  for statement in policy.get("Statement", []):
    if statement.get("Effect") != "Allow":
      continue
    principals = statement.get("Principal")
    if not isinstance(principals, dict):
      continue
    if principal not in _as_list(principals.get("Service", [])):
      continue
    if "s3:GetObject" not in _as_list(statement.get("Action", [])):
      continue
    allowed = statement.get("Condition", {}).get("StringEquals", {}).get("AWS:SourceArn")
    if allowed is not None and source_arn in _as_list(allowed):
      return True
  return False


@pytest.fixture
def grants_read() -> Callable[..., bool]:
  """Evaluate a bucket policy document for a distribution's read access."""
  return _grants_read
