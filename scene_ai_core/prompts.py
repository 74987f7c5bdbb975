# scene_ai_core/prompts.py

"""
Prompts e instrucciones de los pipelines de generación.
"""

# Constraint que ancla la etapa 2 del pipeline de escena a la lista de la etapa 1
ITEMIZED_LIST_CONSTRAINT = "Do NOT include any items that are not mentioned in this itemized list."

SCENE_RECREATION_PROMPT = """You are a professional interior designer converting real photos of interiors into pixel-perfect lifelike recreations. Given a reference image and a detailed description below, recreate the scene as accurately as possible. Preserve perspectives, colors, and objects as-is. Generate a structured prompt from the description.

Your task is to create a structured prompt that encapsulates the essence of the items below. {constraint}

{items}"""

RENDER_VARIANT_PROMPT = (
    "You must maintain and accurately describe all objects in the scene without changing "
    "any of their aspects, and accurately describe their spatial relations to each other. "
    "Then, create the photorealistic 3D render of the room for interior design. "
    "Add HDR lighting effect."
)

DEFAULT_ANALYSIS_PROMPT = (
    "Analyze this room image and provide a list of ALL the major items visible in the room. "
    "Format your response as a numbered list with each item as: '**Item Name:** Description'. "
    "Your output must only contain the list without any other text. Merge similar items. "
    "Include ALL major items!"
)


def build_scene_prompt(items: str) -> str:
    """
    Prompt de la etapa 2 del pipeline de escena.

    `items` es el texto de la etapa 1 y se inserta verbatim.
    """
    return SCENE_RECREATION_PROMPT.format(constraint=ITEMIZED_LIST_CONSTRAINT, items=items)
