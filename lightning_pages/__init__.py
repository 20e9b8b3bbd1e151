"""Lightning Pages: FastAPI shell with stylesheet caching and a CDN image pipeline."""

__version__ = "0.3.0"
