from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from jose import JWTError, jwt
from fastapi import HTTPException, status
from core.config import SECRET_KEY, ALGORITHM, FILES_BASE_URL
from services.auth import oauth2_scheme

PUBLIC_PATHS = {"/api/health", "/ws", "/docs", "/redoc", "/openapi.json"}
PUBLIC_PREFIXES = ("/api/auth/", FILES_BASE_URL.rstrip("/") + "/")


class AuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        # Bypass authentication for public routes
        if path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES) or request.method == "OPTIONS":
            return await call_next(request)

        try:
            token = await oauth2_scheme(request)
        except HTTPException:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Not authenticated"},
            )
        try:
            jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except JWTError:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Could not validate credentials"},
            )
        response = await call_next(request)
        return response
