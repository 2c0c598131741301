"""
==============================================================================
FastAPI Dependencies Module
==============================================================================

Dependency injection for the objects built during application startup.

The scan controller and event hub live on ``app.state``; the catalog is a
module singleton. Route handlers never reach for either directly:

Dependency Hierarchy:
--------------------
        ┌──────────────────────┐
        │   Request.app.state  │
        └──────────┬───────────┘
                   │
        ┌──────────▼───────────┐     ┌───────────────────────┐
        │ get_scan_controller  │     │  get_product_catalog  │
        └──────────────────────┘     └───────────────────────┘

Usage Examples:
--------------
    @router.post("/scanner/start")
    async def start(controller: ScanController = Depends(get_scan_controller)):
        await controller.start()

==============================================================================
"""

from __future__ import annotations

import logging

from fastapi import Request

from scanloop.catalog.catalog import ProductCatalog, get_catalog
from scanloop.core import exceptions
from scanloop.scanner.controller import ScanController


# Module logger
logger = logging.getLogger(__name__)


def get_scan_controller(request: Request) -> ScanController:
    """
    Resolve the application's scan controller.

    Raises:
        AppException: 503 if the lifespan has not built one yet
    """
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        logger.warning("Scanner requested before startup completed")
        raise exceptions.scanner_not_ready()
    return controller


def get_product_catalog() -> ProductCatalog:
    """
    Resolve the loaded product catalog.

    Raises:
        AppException: 500 if the catalog failed to load
    """
    catalog = get_catalog()
    if catalog is None:
        raise exceptions.catalog_not_loaded()
    return catalog
