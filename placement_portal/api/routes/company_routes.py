"""
Company Routes

POST /companies/register - Register a company (coordinator), status "registered"
GET /companies - List companies (coordinator)
PUT /companies/{company_id}/status - Approve / reject a company (admin)
"""

import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from typing import List, Optional

from placement_portal.db.postgres import get_db_session, execute_raw_sql
from placement_portal.core.auth import get_current_coordinator, get_current_admin
from placement_portal.core.exceptions import CompanyNotFound
from placement_portal.schemas.schemas import CompanyCreate, CompanyResponse, CompanyStatusUpdate, CompanyStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/companies", tags=["Companies"])


@router.post("/register", response_model=CompanyResponse, status_code=201)
async def register_company(data: CompanyCreate, user: dict = Depends(get_current_coordinator)):
    """Register a company. New companies always start as "registered"."""
    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO companies (company_name, company_address, website, status)
                VALUES (:company_name, :company_address, :website, 'registered')
                RETURNING id
            """),
            {
                "company_name": data.company_name,
                "company_address": data.company_address,
                "website": data.website,
            }
        )
        company_id = result.scalar_one()

    logger.info("Company %s registered by %s", company_id, user["username"])
    return execute_raw_sql("SELECT * FROM companies WHERE id = :id", {"id": company_id})[0]


@router.get("", response_model=List[CompanyResponse])
async def list_companies(
    status: Optional[CompanyStatus] = Query(None),
    user: dict = Depends(get_current_coordinator),
):
    """List companies, optionally filtered by status."""
    sql = "SELECT * FROM companies"
    params = {}
    if status:
        sql += " WHERE status = :status"
        params["status"] = status.value
    sql += " ORDER BY id"
    return execute_raw_sql(sql, params)


@router.put("/{company_id}/status", response_model=CompanyResponse)
async def update_company_status(
    company_id: int,
    update: CompanyStatusUpdate,
    user: dict = Depends(get_current_admin),
):
    """Approve or reject a company. Only approved companies can post jobs."""
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE companies SET status = :status WHERE id = :id"),
            {"status": update.status.value, "id": company_id}
        )
        if result.rowcount == 0:
            raise CompanyNotFound()

    logger.info("Company %s marked %s", company_id, update.status.value)
    return execute_raw_sql("SELECT * FROM companies WHERE id = :id", {"id": company_id})[0]
