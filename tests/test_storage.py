from types import SimpleNamespace

import pytest

from scene_ai_core.config import Settings, get_settings
from scene_ai_core.providers.fal import FalTrellisReconstructor
from scene_ai_core.services import PlatformServices, build_services, build_storage
from scene_ai_core.storage import BlobNotFoundError, LocalBlobStorage


@pytest.fixture
def local(tmp_path):
    return LocalBlobStorage(tmp_path, "bucket", "http://localhost:8000/blobs/")


def test_local_put_get_y_url(local, tmp_path):
    url = local.put(b"data", "users/u1/renders/a.png", "image/png")

    assert url == "http://localhost:8000/blobs/bucket/users/u1/renders/a.png"
    assert local.get("users/u1/renders/a.png") == b"data"
    assert (tmp_path / "bucket" / "users/u1/renders/a.png").read_bytes() == b"data"
    assert local.owns(url)
    assert not local.owns("https://elsewhere.test/bucket/a.png")


def test_local_get_y_delete_inexistente(local):
    with pytest.raises(BlobNotFoundError):
        local.get("users/u1/missing.png")
    with pytest.raises(BlobNotFoundError):
        local.delete("users/u1/missing.png")


def test_local_list_no_recursivo(local):
    local.put(b"1", "users/u1/renders/b.png", "image/png")
    local.put(b"2", "users/u1/renders/a.png", "image/png")
    local.put(b"3", "users/u1/renders/nested/c.png", "image/png")

    items = local.list("users/u1/renders/")

    assert [i.name for i in items] == ["a.png", "b.png"]
    assert items[0].path == "users/u1/renders/a.png"
    assert local.list("users/u2/renders") == []


def test_local_rechaza_paths_fuera_del_bucket(local):
    with pytest.raises(ValueError):
        local.put(b"x", "../escape.txt", "text/plain")


def test_build_services_local_sin_keys(tmp_path):
    settings = Settings(
        database_url="sqlite:///:memory:",
        storage_backend="local",
        local_storage_dir=str(tmp_path),
    )

    services = build_services(settings)

    assert isinstance(services.storage, LocalBlobStorage)
    # Los proveedores se construyen recién al usarlos
    with pytest.raises(RuntimeError):
        services.image_generator
    with pytest.raises(RuntimeError):
        services.vision


def test_build_storage_supabase_sin_credenciales():
    with pytest.raises(RuntimeError):
        build_storage(Settings(storage_backend="supabase"))


def test_build_storage_backend_desconocido():
    with pytest.raises(RuntimeError):
        build_storage(Settings(storage_backend="s3"))


def test_reconstructor_perezoso_usa_settings(storage, http):
    settings = Settings(fal_key="k", fal_trellis_url="https://fal.test/trellis", http_timeout_s=7)
    services = PlatformServices(settings, session_factory=None, storage=storage, http=http)

    reconstructor = services.reconstructor

    assert isinstance(reconstructor, FalTrellisReconstructor)
    assert reconstructor.url == "https://fal.test/trellis"
    assert reconstructor.timeout == 7
    assert services.reconstructor is reconstructor


class _FakeSupabaseBucket:
    def __init__(self, names):
        self.names = sorted(names)
        self.list_calls = []

    def list(self, path, options):
        self.list_calls.append((path, options))
        start = options["offset"]
        page = self.names[start:start + options["limit"]]
        return [{"id": f"id-{name}", "name": name} for name in page]


def test_supabase_list_pagina_hasta_el_final(monkeypatch):
    from scene_ai_core.storage import supabase_storage

    monkeypatch.setattr(supabase_storage, "LIST_PAGE_SIZE", 2)
    bucket = _FakeSupabaseBucket(["a.png", "b.png", "c.png", "d.png", "e.png"])
    client = SimpleNamespace(storage=SimpleNamespace(from_=lambda name: bucket))
    storage = supabase_storage.SupabaseBlobStorage(client, "scene", "https://sb.test/")

    items = storage.list("users/u1/renders/")

    assert [i.name for i in items] == ["a.png", "b.png", "c.png", "d.png", "e.png"]
    assert items[-1].url == "https://sb.test/storage/v1/object/public/scene/users/u1/renders/e.png"
    assert [options["offset"] for _, options in bucket.list_calls] == [0, 2, 4]
    assert all(path == "users/u1/renders" for path, _ in bucket.list_calls)


def test_get_settings_rechaza_render_variant_count_invalido(monkeypatch):
    monkeypatch.setenv("RENDER_VARIANT_COUNT", "0")
    get_settings.cache_clear()
    try:
        with pytest.raises(RuntimeError):
            get_settings()
    finally:
        get_settings.cache_clear()
