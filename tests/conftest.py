"""
Fixtures compartidas.

- Base SQLite en memoria (una por test)
- Blob storage en memoria
- Proveedores fake (imagen, visión, 3D) que registran cada llamada
- Sesión HTTP fake para descargas (sin red)
"""

import threading
import time
from typing import Any, Callable, Dict, List, Optional

import jwt
import pytest

from scene_ai_core.config import Settings
from scene_ai_core.db.database import create_db_engine, init_db, make_session_factory
from scene_ai_core.engine import GenerationEngine
from scene_ai_core.project_store import ProjectStore
from scene_ai_core.providers import ImageGenerationOutput, ImageGenerationRequest, ImagePart
from scene_ai_core.quota import QuotaLedger
from scene_ai_core.services import PlatformServices
from scene_ai_core.storage import BlobInfo, BlobNotFoundError

JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"
PUBLIC_BASE = "https://blobs.test/public"
BUCKET = "scene-test"


# ============================================================================
# Fakes
# ============================================================================

class MemoryBlobStorage:
    """Blob storage en memoria con la misma semántica que los adapters reales."""

    def __init__(self, bucket: str = BUCKET, base_url: str = PUBLIC_BASE):
        self.bucket = bucket
        self.base_url = base_url
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self._lock = threading.Lock()

    def put(self, data: bytes, path: str, content_type: str) -> str:
        with self._lock:
            self.objects[path] = data
            self.content_types[path] = content_type
        return self.public_url(path)

    def get(self, path: str) -> bytes:
        if path not in self.objects:
            raise BlobNotFoundError(path)
        return self.objects[path]

    def delete(self, path: str) -> None:
        if path not in self.objects:
            raise BlobNotFoundError(path)
        del self.objects[path]

    def list(self, prefix: str) -> List[BlobInfo]:
        folder = prefix.rstrip("/") + "/"
        items = []
        for path in sorted(self.objects):
            rest = path[len(folder):]
            if path.startswith(folder) and "/" not in rest:
                items.append(BlobInfo(name=rest, path=path, url=self.public_url(path)))
        return items

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{self.bucket}/{path}"

    def owns(self, url: str) -> bool:
        return url.startswith(f"{self.base_url}/{self.bucket}/")


class FakeResponse:
    def __init__(self, status_code: int = 200, content: bytes = b"", headers: Optional[dict] = None, json_data: Any = None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self._json = json_data
        self.reason = "OK" if self.ok else "Error"

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self):
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json


class FakeHttpSession:
    """
    Sesión `requests` fake.

    Las URLs registradas en `routes` devuelven su respuesta; cualquier otra
    devuelve 200 con bytes de imagen.
    """

    def __init__(self):
        self.routes: Dict[str, FakeResponse] = {}
        self.post_routes: Dict[str, FakeResponse] = {}
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def get(self, url, **kwargs):
        with self._lock:
            self.calls.append(("GET", url, kwargs))
        return self.routes.get(url) or FakeResponse(200, b"\x89PNG-fake", {"Content-Type": "image/png"})

    def post(self, url, **kwargs):
        with self._lock:
            self.calls.append(("POST", url, kwargs))
        return self.post_routes[url]


class FakeImageGenerator:
    """
    Generador fake. `fail_on` es un predicado sobre el número de llamada (1-based).
    """

    def __init__(self, structured_prompt: Any = '{"objects": ["sofa"]}', seed: int = 42):
        self.structured_prompt = structured_prompt
        self.seed = seed
        self.requests: List[ImageGenerationRequest] = []
        self.fail_on: Optional[Callable[[int], bool]] = None
        self.delay_s = 0.0
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        return len(self.requests)

    def generate(self, request: ImageGenerationRequest) -> ImageGenerationOutput:
        with self._lock:
            self.requests.append(request)
            n = len(self.requests)
        if self.fail_on is not None and self.fail_on(n):
            from scene_ai_core.errors import UpstreamError

            raise UpstreamError("FIBO API", "boom", status=500, body="internal error")
        # Solo las llamadas exitosas esperan `delay_s`
        if self.delay_s:
            time.sleep(self.delay_s)
        return ImageGenerationOutput(
            image_url=f"https://provider.test/images/{n}.png",
            structured_prompt=self.structured_prompt,
            seed=self.seed,
        )


class FakeVision:
    def __init__(self, text: str = "1. **Sofa:** grey fabric\n2. **Lamp:** brass"):
        self.text = text
        self.calls: List[Dict[str, Any]] = []

    def analyze(self, text, image: Optional[ImagePart] = None, *, model=None, json_output=False, temperature=0.0, reasoning_level=None) -> str:
        self.calls.append(
            {
                "text": text,
                "image": image,
                "model": model,
                "json_output": json_output,
                "temperature": temperature,
                "reasoning_level": reasoning_level,
            }
        )
        return self.text


class FakeReconstructor:
    def __init__(self, response: Any = None):
        self.response = response if response is not None else {
            "model_mesh": {"url": "https://fal.test/files/mesh.glb"},
            "image_url": "https://fal.test/files/preview.png",
        }
        self.calls: List[str] = []

    def reconstruct(self, image_url: str) -> Any:
        self.calls.append(image_url)
        return self.response


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite:///:memory:",
        storage_backend="memory",
        supabase_jwt_secret=JWT_SECRET,
        storage_bucket=BUCKET,
        public_base_url=PUBLIC_BASE,
        vision_provider="gemini",
        gemini_model_detect="detect-model",
    )


@pytest.fixture
def storage() -> MemoryBlobStorage:
    return MemoryBlobStorage()


@pytest.fixture
def http() -> FakeHttpSession:
    return FakeHttpSession()


@pytest.fixture
def image_generator() -> FakeImageGenerator:
    return FakeImageGenerator()


@pytest.fixture
def vision() -> FakeVision:
    return FakeVision()


@pytest.fixture
def reconstructor() -> FakeReconstructor:
    return FakeReconstructor()


@pytest.fixture
def services(settings, storage, http, image_generator, vision, reconstructor) -> PlatformServices:
    """Contexto de servicios con base en memoria y proveedores fake."""
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    yield PlatformServices(
        settings,
        make_session_factory(engine),
        storage,
        http,
        image_generator=image_generator,
        vision=vision,
        reconstructor=reconstructor,
    )
    engine.dispose()


@pytest.fixture
def ledger(services) -> QuotaLedger:
    return QuotaLedger(services.session_factory)


@pytest.fixture
def engine(services, ledger) -> GenerationEngine:
    return GenerationEngine(services, ledger)


@pytest.fixture
def store(services) -> ProjectStore:
    return ProjectStore(services)


@pytest.fixture
def user(ledger) -> str:
    """Usuario con cuenta creada (cuotas por defecto)."""
    ledger.ensure_account("u1", email="u1@example.com")
    return "u1"


def make_token(sub: str = "u1", secret: str = JWT_SECRET, **claims) -> str:
    payload = {"sub": sub, "aud": "authenticated", "exp": int(time.time()) + 3600}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")
