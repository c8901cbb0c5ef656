from fastapi import HTTPException, Request

from ..storage import Manager


def get_manager(request: Request) -> Manager:
    manager = getattr(request.app.state, 'manager', None)
    if manager is None:
        raise HTTPException(503, 'storage unavailable')
    return manager
