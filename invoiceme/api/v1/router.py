from fastapi import APIRouter

from invoiceme.api.routers import customers, events, invoices

api_router = APIRouter()

api_router.include_router(customers.router)
api_router.include_router(invoices.router)
api_router.include_router(events.router)
