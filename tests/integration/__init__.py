"""Integration tests for the client over HTTP.

Uses httpx ASGITransport against a scripted FastAPI fake of the Ollama API,
and httpx MockTransport for network failures.
"""
