"""Shared FastAPI dependencies."""

from fastapi import Request

from tcgp.catalog.catalog import CardCatalog


def get_catalog(request: Request) -> CardCatalog:
    """Return the card catalog owned by the running application."""
    return request.app.state.catalog
