"""Clients for the remote index and turn store (OpenAI REST API)."""
