"""Unit tests for individual components.

Frame decoding, turn accumulation, schemas and configuration, isolated
from any HTTP transport.
"""
