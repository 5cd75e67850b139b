from typing import List

from fastapi import APIRouter, Query, Request

from ..reports import CategoryBreakdown, MonthlyTrend, SummaryReport

router = APIRouter(
    prefix="/reports",
    tags=["reports"],
)


@router.get("/summary", response_model=SummaryReport)
async def read_summary(request: Request):
    return await request.app.state.reports.summary()


@router.get("/categories", response_model=CategoryBreakdown)
async def read_category_breakdown(request: Request):
    return await request.app.state.reports.categories()


@router.get("/monthly", response_model=List[MonthlyTrend])
async def read_monthly_trends(
    request: Request,
    months: int = Query(default=12, ge=1, le=24),
):
    return await request.app.state.reports.monthly(months)
