"""API v1 router -- aggregates all v1 endpoint routers."""

from fastapi import APIRouter, Depends

from itemshop.api.v1 import health, item_shop
from itemshop.dependencies import general_rate_limit

api_v1_router = APIRouter()

api_v1_router.include_router(health.router, tags=["health"])
api_v1_router.include_router(
    item_shop.router,
    prefix="/item-shop",
    tags=["item-shop"],
    dependencies=[Depends(general_rate_limit)],
)
