from fastapi import APIRouter

from orgledger.api.categories import router as categories_router
from orgledger.api.invitations import org_router as org_invitations_router
from orgledger.api.invitations import router as invitations_router
from orgledger.api.orgs import router as orgs_router

api_router = APIRouter(prefix="/api")

api_router.include_router(orgs_router)
api_router.include_router(org_invitations_router)
api_router.include_router(invitations_router)
api_router.include_router(categories_router)
