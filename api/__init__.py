"""
API HTTP para scene-ai-core.

Esta capa expone endpoints REST que usan el core interno (scene_ai_core)
para generar escenas, variantes y modelos 3D, y para guardar proyectos.

La API está diseñada para ser consumida por:
- El editor web (cliente con Supabase Auth)
- Scripts de automatización
"""
