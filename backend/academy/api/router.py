from fastapi import APIRouter
from academy.api.endpoints import auth, payments, upi_payments, courses, test_series, documents, admin, homepage_ads, leads

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])
api_router.include_router(upi_payments.router, prefix="/upi-payments", tags=["UPI Payments"])
api_router.include_router(courses.router, prefix="/courses", tags=["Courses"])
api_router.include_router(test_series.router, prefix="/test-series", tags=["Test Series"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(homepage_ads.router, prefix="/admin/homepage-ads", tags=["Homepage Ads"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])

# Enquiry form and ledger export sit at the API root
api_router.include_router(leads.router, tags=["Leads"])
