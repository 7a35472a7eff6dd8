import logging

from fastapi import APIRouter, Depends

from slicerlens.core.config import Settings
from slicerlens.core.dependencies import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["System Management"])


@router.get("/env-check")
async def env_check(settings: Settings = Depends(get_settings)):
    """
    Reports which of the required environment variables are present.
    Values are never returned, only a masked key preview is logged.
    """
    logger.info(f"Environment check: OPENAI_API_KEY={settings.OPENAI_KEY_PREVIEW or 'missing'}, "
                f"PROFILE_ROOT={settings.PROFILE_ROOT}")

    return {
        "message": "Environment variables checked",
        "variables": {
            "OPENAI_API_KEY": "Present" if settings.OPENAI_API_KEY else "Not found",
            # explicit, environment or .env values; the built-in default does not count
            "PROFILE_ROOT": "Present" if "PROFILE_ROOT" in settings.model_fields_set else "Not found",
        },
        "profile_root": settings.PROFILE_ROOT,
        "openai_model": settings.OPENAI_MODEL,
    }
