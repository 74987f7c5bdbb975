#!/usr/bin/env python3
"""
Script helper para ejecutar la API FastAPI.
Ejecuta desde la raíz del proyecto para asegurar que Python encuentre los módulos
'api' y 'scene_ai_core'.

Variables:
    PORT         Puerto (default 8000)
    ENVIRONMENT  "local" activa el autoreload
"""

import os
import sys
from pathlib import Path

import uvicorn

# Asegurar que el directorio raíz esté en el PYTHONPATH
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


def main():
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("ENVIRONMENT", "local") == "local"
    print(f"🚀 Iniciando API FastAPI en http://localhost:{port}")
    print(f"📖 Documentación disponible en http://localhost:{port}/docs")
    print(f"✓ Health check: http://localhost:{port}/health")
    uvicorn.run("api.main:app", host="0.0.0.0", port=port, reload=reload)


if __name__ == "__main__":
    main()
