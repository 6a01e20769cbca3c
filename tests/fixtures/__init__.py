# tests/fixtures/__init__.py
"""Test doubles shared across test modules.

- transports: TransportClient doubles and serializable payloads
"""
