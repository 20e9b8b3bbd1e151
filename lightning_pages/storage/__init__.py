"""Object storage package

Holds the object store port, the S3-compatible adapter, key helpers and the
CDN configuration loaded from the environment.
"""
