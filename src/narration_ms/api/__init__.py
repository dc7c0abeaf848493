"""
FastAPI REST API Layer for narration-ms.

    - routes.py: speak endpoint, signed artifact downloads, /health, /metrics
    - schemas.py: Request/response Pydantic models
    - dependencies.py: FastAPI dependency injection
"""
