"""
Requester identity.

Authentication itself happens upstream (gateway / identity provider); the
verified user id is forwarded in the X-User-Id header.
"""

import logging
from typing import Optional

from fastapi import Header

from .errors import Unauthenticated

logger = logging.getLogger(__name__)


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> int:
    """Get the requester id, 401 when missing or malformed"""
    if not x_user_id:
        logger.warning("⚠️ Request without X-User-Id header")
        raise Unauthenticated("Authentication required. Please login to continue.")

    try:
        user_id = int(x_user_id)
    except ValueError:
        logger.warning(f"⚠️ Malformed X-User-Id header: {x_user_id[:20]!r}")
        raise Unauthenticated("Invalid user identity")

    if user_id <= 0:
        raise Unauthenticated("Invalid user identity")
    return user_id
