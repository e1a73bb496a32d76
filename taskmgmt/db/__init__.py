"""TaskMgmt database layer — declarative base, models, session management."""
