from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from ...config import settings

bearer = HTTPBearer()
optional_bearer = HTTPBearer(auto_error=False)

def _decode(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

def get_claims(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> dict:
    return _decode(creds.credentials)

def get_optional_claims(
    creds: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> dict | None:
    # anonymous callers are allowed; a present but broken token is still a 401
    if creds is None:
        return None
    return _decode(creds.credentials)

def require_admin(claims: dict = Depends(get_claims)) -> dict:
    role = claims.get("role", "student")
    if role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin required")
    return claims

def get_user_id(claims: dict = Depends(get_claims)) -> str:
    sub = claims.get("sub")
    if not sub:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return str(sub)

def get_optional_user_id(claims: dict | None = Depends(get_optional_claims)) -> str | None:
    if not claims or not claims.get("sub"):
        return None
    return str(claims["sub"])

def get_user_email(claims: dict = Depends(get_claims)) -> str | None:
    return claims.get("email")
