"""Routers mounted by the LightningPages server shell."""
