"""Server control API endpoints: status and scans"""

from fastapi import APIRouter, Depends, HTTPException

from model import CATEGORIES
from webui.api.deps import AppContext, check_category, get_context
from webui.models.schemas import OperationResponse, ScanRequest, ServerStatusResponse

router = APIRouter(prefix="/api/control", tags=["control"])


@router.get("/status", response_model=ServerStatusResponse)
def get_status(context: AppContext = Depends(get_context)):
    """Get whether the server is running and on which port"""
    return ServerStatusResponse(**context.control.server_status())


@router.post("/scan", response_model=OperationResponse)
def scan(request: ScanRequest, context: AppContext = Depends(get_context)):
    """
    Scan one category, or every category with type "all"

    A category already being scanned is rejected with 409 (reported as a
    failure entry for "all"); the scan in progress is not affected.
    """
    if request.type == 'all':
        results = {}
        failures = []
        for category in CATEGORIES:
            result = context.control.scan_media(category, request.create_thumbnails)
            results[category] = result.to_dict()
            if not result.success:
                failures.append(f"{category}: {result.error}")
        return OperationResponse(
            success=not failures,
            message=f"Scanned {len(CATEGORIES) - len(failures)} of {len(CATEGORIES)} categories",
            error='; '.join(failures) or None,
            data=results,
        )

    check_category(request.type)
    result = context.control.scan_media(request.type, request.create_thumbnails)
    if result.conflict:
        raise HTTPException(status_code=409, detail=result.error)
    return OperationResponse(**result.to_dict())
