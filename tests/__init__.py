"""Tests for grpc-mtls.

Test Structure:
    tests/
    ├── conftest.py          # Shared pytest fixtures
    ├── fixtures/            # Static PEM material
    ├── helpers/             # Test PKI generation
    ├── unit/                # Unit tests (in-memory storage, no network)
    └── integration/         # Real gRPC handshakes over localhost

Usage:
    # Run all tests
    pytest

    # Run only unit tests
    pytest -m unit

    # Run only integration tests
    pytest -m integration
"""
