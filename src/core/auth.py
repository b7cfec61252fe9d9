"""
Owner resolution for incoming requests.

Token verification is done upstream by the authentication layer, which records the
authenticated owner on request.state.owner_id. This module only reads that value;
the bookmark services take the resolved owner_id as an explicit argument.
"""
import logging

from fastapi import Depends, Request

from core.config import Settings, get_settings
from services.exceptions import UnauthenticatedError

logger = logging.getLogger(__name__)


def get_current_owner_id(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> int:
    """
    Resolve the authenticated owner for this request.

    Resolution order:
    1. request.state.owner_id, set by the upstream authentication layer.
    2. settings.dev_owner_id when DEV_MODE is enabled.

    Raises:
        UnauthenticatedError: If neither yields an owner.
    """
    owner_id = getattr(request.state, "owner_id", None)
    if owner_id is not None:
        try:
            return int(owner_id)
        except (TypeError, ValueError) as e:
            logger.warning("owner_resolution_invalid owner_id=%r", owner_id)
            raise UnauthenticatedError("Invalid authenticated owner") from e

    if settings.dev_mode:
        return settings.dev_owner_id

    raise UnauthenticatedError()
