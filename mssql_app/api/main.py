from fastapi import APIRouter

from mssql_app.api.routes import app_info, blocks, utils

api_router = APIRouter()
api_router.include_router(app_info.router)
api_router.include_router(blocks.router)
api_router.include_router(utils.router)
