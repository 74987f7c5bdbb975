"""
Core de orquestación de generación.

Este paquete contiene la lógica con invariantes reales del sistema:
- Quota Ledger (contabilidad de recursos por usuario)
- Provider adapters (generación de imágenes, análisis visión-lenguaje, reconstrucción 3D)
- Ingestión de assets (bytes inline o remotos → blob storage)
- Orquestador de pipelines (etapas secuenciales, fan-out paralelo)
- Project State Store (estado versionado, con historial y forks)

La capa HTTP (`api/`) solo traduce requests a llamadas de este paquete.
"""
