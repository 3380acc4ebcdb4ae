from fastapi import APIRouter

from resume_formatter.core.config import load_credential_pool

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status of the application.")
async def health_check():
    return {"status": "healthy", "aiConfigured": bool(load_credential_pool())}
