from fastapi import APIRouter
from gateway.api.endpoints import catalog, query

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(catalog.router)
api_router.include_router(query.router)
