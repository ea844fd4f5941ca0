from .auth import router as auth_router
from .users import router as users_router
from .tournaments import router as tournaments_router
from .matches import router as matches_router
from .wallet import router as wallet_router
from .kyc import router as kyc_router
from .notifications import router as notifications_router
from .support import router as support_router

routers = [auth_router, users_router, tournaments_router, matches_router, wallet_router, kyc_router,
           notifications_router, support_router]
