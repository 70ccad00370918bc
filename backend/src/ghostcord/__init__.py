"""GhostCord realtime building blocks shared by the FastAPI backend."""
