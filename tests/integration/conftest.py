"""Fixtures for cross-domain integration tests.

These tests run the guest flow end to end with both the Ordering and the
Identity domains in process: sign-in, customer sync, checkout and tracking.
"""

import os

import pytest


@pytest.fixture(scope="session")
def _identity_domain(request):
    """Initialize the identity domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from identity.domain import identity

    identity.init()
    return identity


@pytest.fixture(scope="session")
def _ordering_domain(request):
    """Initialize the ordering domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from ordering.domain import ordering

    ordering.init()
    return ordering


def _reset(domain):
    for _, provider in domain.providers.items():
        provider._data_reset()

    for _, broker in domain.brokers.items():
        broker._data_reset()

    domain.event_store.store._data_reset()


@pytest.fixture
def identity_ctx(_identity_domain):
    """Push identity domain context for a test, with cleanup."""
    ctx = _identity_domain.domain_context()
    ctx.push()

    yield _identity_domain

    _reset(_identity_domain)
    ctx.pop()


@pytest.fixture
def ordering_ctx(_ordering_domain):
    """Push ordering domain context for a test, with cleanup."""
    ctx = _ordering_domain.domain_context()
    ctx.push()

    yield _ordering_domain

    _reset(_ordering_domain)
    ctx.pop()
