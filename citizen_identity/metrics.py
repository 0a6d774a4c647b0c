"""Prometheus counters for the registration and login endpoints."""

from __future__ import annotations

from prometheus_client import Counter

REGISTRATIONS = Counter(
    "identity_registrations_total",
    "Registration attempts by outcome.",
    ["outcome"],
)

LOGINS = Counter(
    "identity_logins_total",
    "Login attempts by outcome.",
    ["outcome"],
)
