from fastapi import APIRouter
from pms.routers import reviews, evidence

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(reviews.router, tags=["Reviews"])
api_router.include_router(evidence.router, tags=["Evidence"])
