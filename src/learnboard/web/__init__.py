"""Web API for learnboard (FastAPI)."""
