"""HTTP API - FastAPI application and versioned routes."""
