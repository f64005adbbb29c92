"""
Brain backend selection (live Supabase or in-memory showcase)
"""
from typing import Optional

from carebrain.core.config import get_settings
from carebrain.core.logging_config import LoggingConfig
from carebrain.core.transport import BrainTransport

logger = LoggingConfig.get_logger(__name__)

_transport: Optional[BrainTransport] = None


def get_brain_transport() -> BrainTransport:
    """Get or create the configured brain transport"""
    global _transport
    if _transport is None:
        settings = get_settings()
        if settings.brain_backend == "showcase":
            from carebrain.services.showcase_backend import get_showcase_backend
            _transport = get_showcase_backend()
        else:
            from carebrain.core.supabase_client import SupabaseClient
            _transport = SupabaseClient(settings)
        logger.info(f"Brain backend: {settings.brain_backend}")
    return _transport


async def close_brain_transport() -> None:
    """Close the transport created by get_brain_transport"""
    global _transport
    if _transport is not None:
        await _transport.close()
    _transport = None
