import base64
import json
import time

import pytest

from scene_ai_core.db.database import session_scope
from scene_ai_core.db.models import Account
from scene_ai_core.engine import parse_structured_prompt, serialize_structured_prompt
from scene_ai_core.errors import NotFoundError, QuotaExceededError, UpstreamError, ValidationError
from scene_ai_core.prompts import ITEMIZED_LIST_CONSTRAINT, RENDER_VARIANT_PROMPT

from .conftest import FakeResponse

IMAGE_B64 = base64.b64encode(b"reference-image").decode()


def _exhaust(ledger, user_id, **values):
    with session_scope(ledger.session_factory) as session:
        account = session.get(Account, user_id)
        for key, value in values.items():
            setattr(account, key, value)


# ============================================================================
# Imagen simple
# ============================================================================

def test_generate_image_e2e(engine, ledger, image_generator, storage, user):
    assert ledger.check_quota(user, "image") == 200

    result = engine.generate_image(user, prompt="a cozy living room", seed=7)

    summary = ledger.get_summary(user)
    assert summary.images_used == 1
    assert summary.images_remaining == 199

    assert result.original_url == "https://provider.test/images/1.png"
    assert result.image_url.startswith(f"{storage.base_url}/{storage.bucket}/users/u1/renders/")
    assert result.image_url.endswith(".png")
    assert result.structured_prompt == {"objects": ["sofa"]}
    assert result.seed == 42

    request = image_generator.requests[0]
    assert request.prompt == "a cozy living room"
    assert request.seed == 7
    assert request.reference_images == []


def test_generate_image_serializa_structured_prompt(engine, image_generator, user):
    engine.generate_image(user, structured_prompt={"objects": ["lamp"]})

    assert json.loads(image_generator.requests[0].structured_prompt) == {"objects": ["lamp"]}


def test_generate_image_structured_prompt_no_json_se_devuelve_crudo(engine, image_generator, user):
    image_generator.structured_prompt = "not { json"

    result = engine.generate_image(user, prompt="x")

    assert result.structured_prompt == "not { json"


def test_generate_image_con_imagen_de_referencia(engine, image_generator, user):
    engine.generate_image(user, image_base64=IMAGE_B64)

    assert image_generator.requests[0].reference_images == [IMAGE_B64]


def test_generate_image_sin_inputs(engine, ledger, image_generator, user):
    with pytest.raises(ValidationError):
        engine.generate_image(user)

    assert image_generator.calls == 0
    assert ledger.get_summary(user).images_used == 0


def test_generate_image_sin_cuota_no_llama_al_proveedor(engine, ledger, image_generator, http, user):
    _exhaust(ledger, user, images_used=200)

    with pytest.raises(QuotaExceededError):
        engine.generate_image(user, prompt="x")

    assert image_generator.calls == 0
    assert http.calls == []
    assert ledger.get_summary(user).images_used == 200


def test_generate_image_fallo_del_proveedor_no_compromete(engine, ledger, image_generator, storage, user):
    image_generator.fail_on = lambda n: True

    with pytest.raises(UpstreamError):
        engine.generate_image(user, prompt="x")

    assert ledger.get_summary(user).images_used == 0
    assert storage.objects == {}


def test_generate_image_fallo_de_descarga_no_compromete(engine, ledger, http, user):
    http.routes["https://provider.test/images/1.png"] = FakeResponse(500, b"oops")

    with pytest.raises(UpstreamError):
        engine.generate_image(user, prompt="x")

    assert ledger.get_summary(user).images_used == 0


def test_structured_prompt_helpers():
    assert serialize_structured_prompt(None) is None
    assert serialize_structured_prompt('{"a": 1}') == '{"a": 1}'
    assert serialize_structured_prompt({"a": 1}) == '{"a": 1}'
    assert parse_structured_prompt('{"a": 1}') == {"a": 1}
    assert parse_structured_prompt({"a": 1}) == {"a": 1}
    assert parse_structured_prompt("plain") == "plain"


# ============================================================================
# Escena (2 etapas)
# ============================================================================

def test_generate_scene_e2e(engine, ledger, vision, image_generator, user):
    result = engine.generate_scene(
        user,
        image_base64=IMAGE_B64,
        analysis_prompt="List the furniture",
        mime_type="image/png",
    )

    assert result.furniture_list == vision.text
    assert result.structured_prompt == {"objects": ["sofa"]}
    assert ledger.get_summary(user).images_used == 1

    analysis = vision.calls[0]
    assert analysis["text"] == "List the furniture"
    assert analysis["image"].data_base64 == IMAGE_B64
    assert analysis["image"].mime_type == "image/png"

    generation = image_generator.requests[0]
    assert vision.text in generation.prompt
    assert ITEMIZED_LIST_CONSTRAINT in generation.prompt
    assert generation.reference_images == [IMAGE_B64]


def test_generate_scene_mime_del_prefijo_data_uri(engine, vision, user):
    engine.generate_scene(user, image_base64=f"data:image/webp;base64,{IMAGE_B64}", analysis_prompt="x")

    image = vision.calls[0]["image"]
    assert image.mime_type == "image/webp"
    assert image.data_base64 == IMAGE_B64


@pytest.mark.parametrize("text", ["", "   \n  "])
def test_generate_scene_etapa_1_vacia_falla_antes_de_etapa_2(engine, ledger, vision, image_generator, user, text):
    vision.text = text

    with pytest.raises(UpstreamError):
        engine.generate_scene(user, image_base64=IMAGE_B64, analysis_prompt="List")

    assert image_generator.calls == 0
    assert ledger.get_summary(user).images_used == 0


def test_generate_scene_inputs_requeridos(engine, vision, user):
    with pytest.raises(ValidationError):
        engine.generate_scene(user, image_base64=IMAGE_B64, analysis_prompt="")
    with pytest.raises(ValidationError):
        engine.generate_scene(user, image_base64="", analysis_prompt="List")

    assert vision.calls == []


# ============================================================================
# Fan-out de variantes
# ============================================================================

def test_render_variants_exito_compromete_n(engine, ledger, image_generator, storage, user):
    session = engine.render_variants(user, screenshot=f"data:image/png;base64,{IMAGE_B64}")

    assert ledger.get_summary(user).images_used == 2
    assert [r.id for r in session.results] == [1, 2]

    prefix = f"users/u1/renders/{session.session_id}"
    assert storage.objects[f"{prefix}-original.png"] == b"reference-image"
    assert f"{prefix}-variant1.png" in storage.objects
    assert f"{prefix}-variant2.png" in storage.objects
    assert session.original_url == storage.public_url(f"{prefix}-original.png")
    assert session.results[0].image_url == storage.public_url(f"{prefix}-variant1.png")

    assert image_generator.calls == 2
    for request in image_generator.requests:
        assert request.reference_images == [session.original_url]
        assert request.prompt == RENDER_VARIANT_PROMPT
        assert request.aspect_ratio == "4:3"


def test_render_variants_una_rama_falla_no_compromete(engine, ledger, image_generator, storage, user):
    image_generator.fail_on = lambda n: n == 2

    with pytest.raises(UpstreamError):
        engine.render_variants(user, screenshot=IMAGE_B64)

    assert ledger.get_summary(user).images_used == 0
    # El screenshot original ya quedó guardado
    assert any(path.endswith("-original.png") for path in storage.objects)


def test_render_variants_falla_sin_esperar_ni_cancelar_hermanas(engine, ledger, image_generator, storage, user):
    # Una rama tarda, la otra falla enseguida
    image_generator.delay_s = 1.0
    image_generator.fail_on = lambda n: n == 2

    started = time.monotonic()
    with pytest.raises(UpstreamError):
        engine.render_variants(user, screenshot=IMAGE_B64)
    elapsed = time.monotonic() - started

    assert elapsed < image_generator.delay_s

    # La rama lenta termina igual y su render queda guardado
    deadline = time.monotonic() + 10
    while time.monotonic() < deadline:
        if any("-variant" in path for path in list(storage.objects)):
            break
        time.sleep(0.05)

    (original,) = [p for p in storage.objects if p.endswith("-original.png")]
    session_prefix = original[: -len("-original.png")]
    variants = [p for p in storage.objects if "-variant" in p]
    assert len(variants) == 1
    assert variants[0] in {f"{session_prefix}-variant1.png", f"{session_prefix}-variant2.png"}
    assert ledger.get_summary(user).images_used == 0


def test_render_variants_chequea_cuota_para_n(engine, ledger, image_generator, storage, user):
    _exhaust(ledger, user, images_used=199)

    with pytest.raises(QuotaExceededError):
        engine.render_variants(user, screenshot=IMAGE_B64)

    assert image_generator.calls == 0
    assert storage.objects == {}


def test_render_variants_screenshot_requerido(engine, user):
    with pytest.raises(ValidationError):
        engine.render_variants(user, screenshot="")


def test_render_variants_screenshot_invalido(engine, ledger, image_generator, user):
    with pytest.raises(ValidationError):
        engine.render_variants(user, screenshot="%%% not base64 %%%")

    assert image_generator.calls == 0
    assert ledger.get_summary(user).images_used == 0


# ============================================================================
# Reconstrucción 3D
# ============================================================================

def test_generate_model_campo_conocido(engine, ledger, reconstructor, user):
    result = engine.generate_model(user, image_url="https://blobs.test/img.png")

    assert result.model_url == "https://fal.test/files/mesh.glb"
    assert result.image_url == "https://fal.test/files/preview.png"
    assert result.raw_response is reconstructor.response
    assert reconstructor.calls == ["https://blobs.test/img.png"]

    summary = ledger.get_summary(user)
    assert summary.models_used == 1
    assert summary.images_used == 0


def test_generate_model_busca_en_toda_la_respuesta(engine, reconstructor, user):
    reconstructor.response = {"outputs": [{"files": ["preview.png", "https://fal.test/out/model.gltf"]}]}

    result = engine.generate_model(user, image_url="https://x/img.png")

    assert result.model_url == "https://fal.test/out/model.gltf"
    assert result.image_url is None


def test_generate_model_sin_mesh_no_compromete(engine, ledger, reconstructor, user):
    reconstructor.response = {"images": ["a.png"]}

    with pytest.raises(NotFoundError):
        engine.generate_model(user, image_url="https://x/img.png")

    assert ledger.get_summary(user).models_used == 0


def test_generate_model_sin_cuota(engine, ledger, reconstructor, user):
    _exhaust(ledger, user, models_used=100)

    with pytest.raises(QuotaExceededError):
        engine.generate_model(user, image_url="https://x/img.png")

    assert reconstructor.calls == []


# ============================================================================
# Análisis
# ============================================================================

def test_analyze_image_texto(engine, vision, ledger, user):
    result = engine.analyze_image("Describe", image_base64=IMAGE_B64)

    assert result == {"text": vision.text}
    assert vision.calls[0]["image"].mime_type == "image/jpeg"
    assert vision.calls[0]["json_output"] is False
    # No consume cuota
    assert ledger.get_summary(user).images_used == 0


def test_analyze_image_json(engine, vision):
    vision.text = '{"items": [1, 2]}'

    assert engine.analyze_image("Describe", json_output=True) == {"items": [1, 2]}
    assert vision.calls[0]["image"] is None


def test_analyze_image_json_invalido(engine, vision):
    vision.text = "not json"

    with pytest.raises(UpstreamError):
        engine.analyze_image("Describe", json_output=True)


def test_analyze_image_desde_url(engine, vision, http):
    http.routes["https://img.test/a.png"] = FakeResponse(200, b"raw", {"Content-Type": "image/png"})

    engine.analyze_image("Describe", image_url="https://img.test/a.png", model="custom-model")

    image = vision.calls[0]["image"]
    assert image.data_base64 == base64.b64encode(b"raw").decode()
    assert image.mime_type == "image/png"
    assert vision.calls[0]["model"] == "custom-model"


def test_analyze_image_respuesta_vacia(engine, vision):
    vision.text = ""

    with pytest.raises(UpstreamError):
        engine.analyze_image("Describe")


def test_analyze_image_prompt_requerido(engine):
    with pytest.raises(ValidationError):
        engine.analyze_image("")


def test_detect_boxes_url_propia_se_pasa_como_referencia(engine, vision, storage, http):
    vision.text = '[{"box_2d": [1, 2, 3, 4], "label": "sofa"}]'
    url = storage.public_url("users/u1/renders/a.png")

    result = engine.detect_boxes("Detect furniture", image_url=url)

    assert result == [{"box_2d": [1, 2, 3, 4], "label": "sofa"}]
    call = vision.calls[0]
    assert call["image"].file_uri == url
    assert call["image"].data_base64 is None
    assert call["model"] == "detect-model"
    assert call["json_output"] is True
    assert call["temperature"] == 0.1
    assert call["reasoning_level"] == "low"
    assert http.calls == []


def test_detect_boxes_prompt_espacial_sube_razonamiento(engine, vision):
    vision.text = "[]"

    engine.detect_boxes("Use spatial reasoning", image_base64=f"data:image/png;base64,{IMAGE_B64}")

    call = vision.calls[0]
    assert call["reasoning_level"] == "high"
    assert call["image"].data_base64 == IMAGE_B64


def test_detect_boxes_url_externa_se_descarga(engine, vision, http):
    vision.text = "[]"

    engine.detect_boxes("Detect", image_url="https://elsewhere.test/a.jpg")

    assert http.calls[0][1] == "https://elsewhere.test/a.jpg"
    assert vision.calls[0]["image"].data_base64 is not None


def test_detect_boxes_inputs_requeridos(engine):
    with pytest.raises(ValidationError):
        engine.detect_boxes("", image_base64=IMAGE_B64)
    with pytest.raises(ValidationError):
        engine.detect_boxes("Detect")
