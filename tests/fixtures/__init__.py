"""Shared test fixtures.

This package contains the token issuer used to build certificate chains,
merchant credentials and signed wire tokens for the tests.
"""
