from fastapi import APIRouter

from contractor_api.routes import (
    admin,
    auth,
    contact,
    gallery,
    meta,
    services,
    user_auth,
    work_orders,
    work_requests,
)

router = APIRouter()
for module in (
    services,
    work_orders,
    work_requests,
    contact,
    gallery,
    auth,
    user_auth,
    admin,
    meta,
):
    router.include_router(module.router)
