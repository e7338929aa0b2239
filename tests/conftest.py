"""Global pytest configuration for hermetic test runs."""

from __future__ import annotations

import os


def pytest_sessionstart(session):  # noqa: ARG001
    # Prevent accidental outbound network during tests (integration/unit).
    os.environ.setdefault("CODEAGENT_DISABLE_NETWORK", "1")
