"""
Health check and a human-readable endpoint listing.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from contractor_api.config import Settings
from contractor_api.dependencies import get_app_settings
from contractor_api.schemas import HealthResponse

router = APIRouter(tags=["meta"])

ENDPOINTS = {
    "services": {
        "GET /services": "List services (category, active_only)",
        "GET /services/categories": "Active service categories with price ranges",
        "GET /services/:id": "Get a service",
        "POST /services": "Create a service (admin)",
        "PUT /services/:id": "Update a service (admin)",
        "DELETE /services/:id": "Delete a service (admin)",
    },
    "workOrders": {
        "GET /work-orders": "List work orders (admin)",
        "GET /work-orders/my-orders": "List the caller's work orders (user)",
        "GET /work-orders/:id": "Get a work order (admin)",
        "POST /work-orders": "Submit a work order with up to 5 images",
        "PUT /work-orders/:id": "Update status or notes (admin)",
        "DELETE /work-orders/:id": "Delete a work order (admin)",
    },
    "workRequests": {
        "GET /work-requests": "List work requests (admin)",
        "GET /work-requests/stats/summary": "Work request counts (admin)",
        "GET /work-requests/:id": "Get a work request (admin)",
        "POST /work-requests": "Submit a work request",
        "PUT /work-requests/:id": "Update a work request (admin)",
        "DELETE /work-requests/:id": "Delete a work request (admin)",
    },
    "contact": {
        "POST /contact": "Submit a contact message",
        "GET /contact": "List contact messages (admin)",
        "PUT /contact/:id": "Update message status (admin)",
    },
    "gallery": {
        "GET /gallery": "List gallery images (category, featured_only)",
        "GET /gallery/:id": "Get a gallery image",
        "POST /gallery": "Upload a gallery image (admin)",
        "PUT /gallery/:id": "Update a gallery image (admin)",
        "DELETE /gallery/:id": "Delete a gallery image (admin)",
    },
    "auth": {
        "POST /auth/login": "Admin login",
        "POST /auth/register": "Create the first admin account",
        "GET /auth/me": "Current admin",
        "POST /auth/change-password": "Change admin password",
    },
    "userAuth": {
        "POST /user-auth/register": "Register a customer account",
        "POST /user-auth/login": "Customer login",
        "GET /user-auth/me": "Current customer",
        "POST /user-auth/change-password": "Change customer password",
    },
    "admin": {
        "GET /admin/dashboard": "Dashboard statistics (admin)",
    },
}


@router.get("/health", response_model=HealthResponse)
def health(request: Request, settings: Settings = Depends(get_app_settings)):
    return HealthResponse(
        status="OK",
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime=round(time.monotonic() - request.app.state.started_at, 3),
        environment=settings.environment,
    )


@router.get("/docs")
def endpoint_listing(settings: Settings = Depends(get_app_settings)):
    return {
        "title": "Contractor Marketplace API",
        "version": "1.0.0",
        "basePath": settings.api_prefix,
        "endpoints": ENDPOINTS,
    }
