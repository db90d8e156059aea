"""FastAPI backend for the RT coverage scheduler."""
