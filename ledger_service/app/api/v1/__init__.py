from fastapi import APIRouter

from .accounts import router as accounts_router
from .catalog import router as catalog_router
from .ledger import router as ledger_router
from .redemptions import router as redemptions_router

api_router = APIRouter()
api_router.include_router(accounts_router, prefix="/accounts", tags=["accounts"])
api_router.include_router(
    ledger_router
)  # prefix는 router 파일 내부에서 정의되어 있음 (/ledger)
api_router.include_router(catalog_router, prefix="/catalog", tags=["catalog"])
api_router.include_router(
    redemptions_router, prefix="/redemptions", tags=["redemptions"]
)
