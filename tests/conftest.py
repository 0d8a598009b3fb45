import os
import tempfile
from io import BytesIO

import pytest
import requests
from PIL import Image

# Keep the module-level app in imgbatch_service.api away from the working tree.
_SCRATCH = tempfile.mkdtemp(prefix="imgbatch-tests-")
for _name in ("UPLOADS_DIR", "IMAGES_DIR", "PROCESSED_DIR"):
    os.environ.setdefault(_name, os.path.join(_SCRATCH, _name.lower()))

from imgbatch_service import fetcher  # noqa: E402
from imgbatch_service.config import Settings, ensure_directories  # noqa: E402
from imgbatch_service.engine import BatchEngine  # noqa: E402
from imgbatch_service.pipeline import ImagePipeline  # noqa: E402
from imgbatch_service.registry import JobRegistry  # noqa: E402


def image_bytes(size=(120, 60), fmt="PNG", mode="RGB"):
    color = (10, 120, 200, 255) if mode == "RGBA" else (10, 120, 200)
    buffer = BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeResponse:
    def __init__(self, status_code, content):
        self.status_code = status_code
        self.content = content

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error", response=self)


@pytest.fixture
def settings(tmp_path):
    s = Settings(
        images_dir=tmp_path / "images",
        processed_dir=tmp_path / "processed",
        uploads_dir=tmp_path / "uploads",
        transform_workers=2,
    )
    ensure_directories(s)
    return s


@pytest.fixture
def make_image(tmp_path):
    """Write a solid-colour image under tmp_path/src and return its path."""
    src = tmp_path / "src"
    src.mkdir(exist_ok=True)

    def _make(name="photo.png", size=(1000, 800), mode="RGB"):
        path = src / name
        path.write_bytes(image_bytes(size=size, fmt=Image.registered_extensions()[path.suffix.lower()], mode=mode))
        return path

    return _make


class FakeRemote:
    """Stands in for requests.get; unknown URLs answer 404."""

    def __init__(self):
        self.served = {}
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        if url not in self.served:
            return FakeResponse(404, b"")
        return FakeResponse(200, self.served[url])


@pytest.fixture
def png_bytes():
    return image_bytes


@pytest.fixture
def remote(monkeypatch):
    fake = FakeRemote()
    monkeypatch.setattr(fetcher.requests, "get", fake.get)
    return fake


@pytest.fixture
def registry():
    return JobRegistry()


@pytest.fixture
def pipeline(settings):
    p = ImagePipeline(settings)
    yield p
    p.close()


@pytest.fixture
def engine(registry, settings, pipeline):
    return BatchEngine(registry, settings, pipeline)
