# app/routes/dashboard.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app import database, schemas, auth
from app.services.dashboard import compute_dashboard_stats

router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"]
)

# Admin Only - Point-in-time statistics
@router.get("/stats", response_model=schemas.DashboardStats, dependencies=[Depends(auth.verify_admin_user)])
def get_dashboard_stats(db: Session = Depends(database.get_db)):
    return compute_dashboard_stats(db)
