# routers/portfolio_routes.py
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from database import get_db
from schemas.holding import ExposureReport, ExposureRequest, PortfolioImportResponse
from services.narratives.narrative_service import list_narratives
from services.portfolio.exposure_service import portfolio_exposure_report
from services.portfolio.holdings_import import HoldingsImportError, import_portfolio_file

router = APIRouter()

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_EXTENSIONS = (".csv", ".xlsx", ".xls")


@router.post("/import", response_model=PortfolioImportResponse)
async def import_portfolio(file: UploadFile = File(...)):
    filename = file.filename or ""
    if not filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise HTTPException(status_code=400, detail="Supported formats: CSV, XLSX, XLS")

    data = await file.read(MAX_UPLOAD_BYTES + 1)
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")

    try:
        imported = import_portfolio_file(filename, data)
    except HoldingsImportError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return PortfolioImportResponse(portfolio_name=imported.name, holdings=imported.holdings)


@router.post("/exposure", response_model=ExposureReport)
def portfolio_exposure(req: ExposureRequest, db: Session = Depends(get_db)):
    return portfolio_exposure_report(req.holdings, list_narratives(db))
