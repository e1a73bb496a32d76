"""HTTP transport: FastAPI routes under ``/v1`` and the response envelope."""
