# certtrust/routers/certificates.py
# Operator endpoints: list, accept and check certificates

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from ..certificates.parsing import load_certificate
from ..certificates.storage import TrustedCertificateEntry
from ..config import settings
from ..exceptions import CertificateParseError, NotInitialized, StorageError
from ..services import TrustService
from .dependencies import get_trust_service

logger = logging.getLogger(__name__)
router = APIRouter()

MAX_FILE_SIZE = settings.MAX_FILE_SIZE


async def _read_upload(file: UploadFile) -> bytes:
    """Read an uploaded certificate file with size checks"""
    content = await file.read()
    if len(content) == 0:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(content) > MAX_FILE_SIZE:
        raise HTTPException(status_code=413, detail=f"File too large (max {MAX_FILE_SIZE // 1024}KB)")
    return content


@router.get("/certificates", tags=["certificates"])
async def list_certificates(service: TrustService = Depends(get_trust_service)) -> Dict[str, Any]:
    """List operator-accepted certificates"""
    try:
        entries = await run_in_threadpool(service.list_entries)
    except NotInitialized as e:
        raise HTTPException(status_code=503, detail=str(e))
    except StorageError as e:
        logger.error(f"Listing certificates failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "count": len(entries),
        "certificates": [entry.to_dict() for entry in entries]
    }


@router.post("/certificates", tags=["certificates"])
async def accept_certificate(
    file: UploadFile = File(...),
    service: TrustService = Depends(get_trust_service)
) -> Dict[str, Any]:
    """Accept an uploaded certificate (PEM or DER) into the local trust store"""
    content = await _read_upload(file)
    logger.info(f"Operator accepting certificate from upload: {file.filename}")

    try:
        cert = load_certificate(content)
    except CertificateParseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        await run_in_threadpool(service.add_certificate, cert)
    except NotInitialized as e:
        raise HTTPException(status_code=503, detail=str(e))
    except StorageError as e:
        logger.error(f"Storing certificate {file.filename} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    entry = TrustedCertificateEntry.from_certificate(cert)
    return {
        "success": True,
        "message": f"Certificate accepted: {file.filename}",
        "certificate": entry.to_dict()
    }


@router.post("/certificates/check", tags=["certificates"])
async def check_certificate(
    file: UploadFile = File(...),
    service: TrustService = Depends(get_trust_service)
) -> Dict[str, Any]:
    """Check whether an uploaded certificate has already been accepted"""
    content = await _read_upload(file)

    try:
        trusted = await run_in_threadpool(service.is_trusted, content)
    except StorageError as e:
        logger.error(f"Trust check for {file.filename} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    try:
        alias = TrustedCertificateEntry.from_certificate(load_certificate(content)).alias
    except CertificateParseError:
        alias = None

    return {
        "filename": file.filename,
        "trusted": trusted,
        "alias": alias
    }
