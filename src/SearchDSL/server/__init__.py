"""HTTP surface for SearchDSL."""

from __future__ import annotations

from SearchDSL.server.app import create_app

__all__ = ["create_app"]
