"""Web package: FastAPI server shell around the asset pipeline."""
