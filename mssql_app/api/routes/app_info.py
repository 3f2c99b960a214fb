"""
App endpoints: definition and connection test (sync).
"""

import asyncio
from typing import Any

from fastapi import APIRouter

from mssql_app.core.sync import sync_app
from mssql_app.definition import describe_app, load_app_config
from mssql_app.schemas import AppSyncIn

router = APIRouter(prefix="/app", tags=["app"])


@router.get("", response_model=dict[str, Any])
def get_app() -> Any:
    """App name, installation instructions, config field declarations and block ids."""
    return describe_app()


@router.post("/sync", response_model=dict[str, Any])
async def sync(body: AppSyncIn) -> Any:
    """Test the given config: connect, SELECT 1, check CONNECT permission."""
    # ConfigFieldError is turned into a 400 by the app-level handler
    config = load_app_config(body.config)
    result = await asyncio.to_thread(sync_app, config)
    return result.model_dump(by_alias=True, exclude_none=True)
