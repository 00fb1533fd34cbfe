# certtrust/routers/dependencies.py
# FastAPI dependencies shared by the routers

from fastapi import Request

from ..services import TrustService


def get_trust_service(request: Request) -> TrustService:
    """Return the TrustService owned by the running application"""
    return request.app.state.trust_service
