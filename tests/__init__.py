"""Test suite for the knot Ollama client.

Unit tests cover decoding, turn assembly, models and configuration.
Integration tests drive the client and chat session over real httpx
streaming against an in-process fake Ollama server.
"""
