import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Response
from sqlalchemy.orm import Session

from config import get_settings
from database import get_db
from months import add_months, current_month, diff_months
from schemas import (
    MONTH_PATTERN,
    BudgetIn,
    BudgetItemIn,
    BudgetItemOut,
    BudgetItemUpdate,
    BudgetOut,
    BudgetOverrideIn,
    BudgetOverrideOut,
    BudgetRangeOut,
)
from services import (
    BudgetAccessDenied,
    BudgetNotFound,
    BudgetService,
    InvalidBudgetItem,
)

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Budget Planner")


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> int:
    try:
        return int(x_user_id)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=401, detail="Missing or invalid user") from exc


def budget_service(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
) -> BudgetService:
    return BudgetService(db, user_id)


def _http_error(exc: ValueError) -> HTTPException:
    if isinstance(exc, (BudgetNotFound, BudgetAccessDenied)):
        return HTTPException(status_code=404, detail="Not found or access denied")
    return HTTPException(status_code=400, detail=str(exc))


@app.post("/api/budgets", response_model=BudgetOut, status_code=201)
def create_budget(data: BudgetIn, service: BudgetService = Depends(budget_service)):
    return service.create_budget(data)


@app.get("/api/budgets", response_model=list[BudgetOut])
def list_budgets(service: BudgetService = Depends(budget_service)):
    return service.list_budgets()


@app.get("/api/budgets/{budget_id}", response_model=BudgetRangeOut)
def budget_range(
    budget_id: int,
    from_month: Optional[str] = Query(default=None, alias="from", pattern=MONTH_PATTERN),
    to_month: Optional[str] = Query(default=None, alias="to", pattern=MONTH_PATTERN),
    service: BudgetService = Depends(budget_service),
):
    from_month = from_month or current_month()
    to_month = to_month or add_months(from_month, 11)
    if diff_months(from_month, to_month) >= settings.max_range_months:
        raise HTTPException(
            status_code=400,
            detail=f"Range must not exceed {settings.max_range_months} months",
        )
    try:
        months = service.budget_for_range(budget_id, from_month, to_month)
    except ValueError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:
        logger.exception(f"budget_range failed: budget_id={budget_id}")
        raise HTTPException(status_code=500, detail="Failed to load budget") from exc
    return BudgetRangeOut.model_validate({"months": months}, from_attributes=True)


@app.get("/api/budgets/{budget_id}/items", response_model=list[BudgetItemOut])
def list_items(budget_id: int, service: BudgetService = Depends(budget_service)):
    try:
        return service.list_items(budget_id)
    except ValueError as exc:
        raise _http_error(exc) from exc


@app.post(
    "/api/budgets/{budget_id}/items", response_model=BudgetItemOut, status_code=201
)
def create_item(
    budget_id: int,
    data: BudgetItemIn,
    service: BudgetService = Depends(budget_service),
):
    try:
        return service.create_item(budget_id, data)
    except ValueError as exc:
        raise _http_error(exc) from exc


@app.get("/api/budgets/{budget_id}/items/{item_id}", response_model=BudgetItemOut)
def get_item(
    budget_id: int, item_id: int, service: BudgetService = Depends(budget_service)
):
    try:
        return service.get_item(budget_id, item_id)
    except ValueError as exc:
        raise _http_error(exc) from exc


@app.patch("/api/budgets/{budget_id}/items/{item_id}", response_model=BudgetItemOut)
def update_item(
    budget_id: int,
    item_id: int,
    data: BudgetItemUpdate,
    service: BudgetService = Depends(budget_service),
):
    try:
        return service.update_item(budget_id, item_id, data)
    except ValueError as exc:
        raise _http_error(exc) from exc


@app.delete("/api/budgets/{budget_id}/items/{item_id}", status_code=204)
def delete_item(
    budget_id: int, item_id: int, service: BudgetService = Depends(budget_service)
):
    try:
        service.delete_item(budget_id, item_id)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=204)


@app.get(
    "/api/budgets/{budget_id}/items/{item_id}/overrides",
    response_model=list[BudgetOverrideOut],
)
def list_overrides(
    budget_id: int, item_id: int, service: BudgetService = Depends(budget_service)
):
    try:
        return service.list_overrides(budget_id, item_id)
    except ValueError as exc:
        raise _http_error(exc) from exc


@app.put("/api/budgets/{budget_id}/overrides")
def upsert_override(
    budget_id: int,
    data: BudgetOverrideIn,
    service: BudgetService = Depends(budget_service),
):
    try:
        override = service.upsert_override(budget_id, data)
    except ValueError as exc:
        raise _http_error(exc) from exc
    if override is None:
        return {"deleted": True}
    return BudgetOverrideOut.model_validate(override)


@app.delete("/api/budgets/{budget_id}/overrides", status_code=204)
def delete_override(
    budget_id: int,
    budget_item_id: int = Query(...),
    month: str = Query(..., pattern=MONTH_PATTERN),
    service: BudgetService = Depends(budget_service),
):
    try:
        service.delete_override(budget_id, budget_item_id, month)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=204)


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
