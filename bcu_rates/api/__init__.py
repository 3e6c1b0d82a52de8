"""HTTP surface for :mod:`bcu_rates`."""

from __future__ import annotations

from bcu_rates.api.server import create_app

__all__ = ["create_app"]
