"""
Blog core router module generic functionalities
"""

from fastapi import APIRouter, Depends

from ..dependency import get_settings
from ...settings import Settings
from ...schemas import config


router = APIRouter(tags=["Generic"])


@router.get("/health", response_model=dict)
async def verify_running_backend():
    """
    Return 200 OK with an empty object as body to only verify that the service and the middlewares work
    """

    return {}


@router.get("/settings", response_model=config.GeneralConfig)
async def get_settings_overview(settings: Settings = Depends(get_settings)):
    """
    Return the important blog core settings which directly affect the handling of requests
    """

    return settings.general
