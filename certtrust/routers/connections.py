# certtrust/routers/connections.py
# Connection probe so a UI can offer "accept certificate and retry"

import logging
from typing import Optional

import requests
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..exceptions import NotInitialized, SecurityError
from ..services import TrustService
from .dependencies import get_trust_service

logger = logging.getLogger(__name__)
router = APIRouter()


class ProbeRequest(BaseModel):
    url: str


class ProbeResponse(BaseModel):
    url: str
    result: str
    status_code: Optional[int] = None
    detail: Optional[str] = None


@router.post("/connections/probe", response_model=ProbeResponse, tags=["connections"])
def probe_connection(body: ProbeRequest, service: TrustService = Depends(get_trust_service)):
    """Open a connection through the trust subsystem and send a HEAD request"""
    try:
        with service.open_connection(body.url) as connection:
            response = connection.head(allow_redirects=False)
    except requests.exceptions.InvalidURL as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotInitialized as e:
        return ProbeResponse(url=body.url, result="not_initialized", detail=str(e))
    except requests.exceptions.SSLError as e:
        logger.info(f"Probe of {body.url} rejected the server certificate: {e}")
        return ProbeResponse(url=body.url, result="untrusted_certificate", detail=str(e))
    except SecurityError as e:
        return ProbeResponse(url=body.url, result="security_error", detail=str(e))
    except requests.exceptions.RequestException as e:
        logger.info(f"Probe of {body.url} failed: {e}")
        return ProbeResponse(url=body.url, result="connection_error", detail=str(e))

    return ProbeResponse(url=body.url, result="ok", status_code=response.status_code)
