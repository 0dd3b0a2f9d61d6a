"""Sync a Notion blog database into Cloudflare R2 and serve the bucket over HTTP."""

__all__ = ["config", "models", "pipeline", "server"]
