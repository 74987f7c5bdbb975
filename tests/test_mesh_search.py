from scene_ai_core.mesh_search import NodeKind, classify, find_first_url_with_extensions


def test_encuentra_url_anidada():
    data = {"a": {"b": ["x.png", "mesh.glb"]}}

    assert find_first_url_with_extensions(data, [".glb"]) == "mesh.glb"


def test_orden_bfs_prefiere_lo_menos_profundo():
    data = {
        "deep": {"deeper": {"url": "https://x/deep.glb"}},
        "shallow": "https://x/shallow.obj",
    }

    assert find_first_url_with_extensions(data, [".glb", ".obj"]) == "https://x/shallow.obj"


def test_match_case_insensitive():
    assert find_first_url_with_extensions(["https://x/MODEL.GLB"], [".glb"]) == "https://x/MODEL.GLB"
    assert find_first_url_with_extensions(["https://x/model.glb"], [".GLB"]) == "https://x/model.glb"


def test_sin_match_devuelve_none():
    data = {"images": ["a.png", "b.jpg"], "count": 2, "ok": True, "none": None}

    assert find_first_url_with_extensions(data, [".glb", ".gltf", ".obj"]) is None


def test_estructura_ciclica_termina():
    data = {"name": "root", "children": []}
    data["children"].append(data)
    data["self"] = data

    assert find_first_url_with_extensions(data, [".glb"]) is None


def test_ciclo_con_match_lo_encuentra():
    inner = {"file": "scene.gltf"}
    data = {"a": inner, "b": [inner]}
    inner["back"] = data

    assert find_first_url_with_extensions(data, [".gltf"]) == "scene.gltf"


def test_sin_extensiones_devuelve_none():
    assert find_first_url_with_extensions({"a": "mesh.glb"}, []) is None


def test_raiz_escalar():
    assert find_first_url_with_extensions("mesh.obj", [".obj"]) == "mesh.obj"
    assert find_first_url_with_extensions(42, [".obj"]) is None


def test_anidamiento_profundo_no_agota_el_stack():
    data = current = {}
    for _ in range(5000):
        current["next"] = {}
        current = current["next"]
    current["url"] = "deep/mesh.glb"

    assert find_first_url_with_extensions(data, [".glb"]) == "deep/mesh.glb"


def test_classify():
    assert classify({"a": 1}) is NodeKind.MAPPING
    assert classify([1, 2]) is NodeKind.SEQUENCE
    assert classify((1, 2)) is NodeKind.SEQUENCE
    assert classify("abc") is NodeKind.SCALAR
    assert classify(b"abc") is NodeKind.SCALAR
    assert classify(None) is NodeKind.SCALAR
