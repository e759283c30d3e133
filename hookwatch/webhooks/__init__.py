"""Webhook ingestion: models, validation, message building and the HTTP server."""
