"""
TaskMgmt — project and task management rules engine.

Layers (outermost first):
    api           FastAPI routes under /v1, ApiResult envelope
    services      Project / Task rules engines, history trail
    repositories  Persistence gateway and unit of work
    db            SQLAlchemy models, engine registry, session factory
    engine        Errors, configuration, structured logging, request context
"""

__version__ = "1.0.0"
__all__ = ["api", "services", "repositories", "db", "engine"]
