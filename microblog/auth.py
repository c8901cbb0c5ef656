import re

from fastapi import Header, HTTPException

USER_ID_HEADER = 'System-Design-User-Id'
USER_ID_PATTERN = re.compile(r'^[0-9a-f]+$')


def is_valid_user_id(user_id: str) -> bool:
    return USER_ID_PATTERN.match(user_id) is not None


async def get_current_user(
    user_id: str = Header(default='', alias=USER_ID_HEADER),
) -> str:
    """Caller identity from the user id header; lowercase hex only"""
    if not is_valid_user_id(user_id):
        raise HTTPException(401, 'The user_id is not valid')
    return user_id
