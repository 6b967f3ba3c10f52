"""
Shared dependency functions for FastAPI routers.
Tokens are issued by the external auth service; this API only verifies them.
"""
from fastapi import Request, HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from config.config import SECRET_KEY, JWT_ALGORITHM
from database.DB import get_db
from services.AuditCollaborator import AuditCollaborator
from services.PointsLedger import PointsLedger
from services.AssignmentRegistry import AssignmentRegistry
from services.WorkSubmissionReviewer import WorkSubmissionReviewer
from services.EventCompletionCoordinator import EventCompletionCoordinator
from services.EventLifecycle import EventLifecycle

security = HTTPBearer(auto_error=False)


def verify_token(token: str):
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None


def client_ip(request: Request):
    return request.client.host if request.client else None


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """
    Dependency to get the currently authenticated user from the bearer token.
    Raises HTTPException if the token is missing or invalid.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="User not authenticated")
    payload = verify_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return {"id": payload["sub"], "role": payload.get("role"), "name": payload.get("name")}


async def require_admin(user: dict = Depends(get_current_user)):
    """
    Dependency to require admin role.
    Raises HTTPException if user is not an admin.
    """
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


async def require_volunteer(user: dict = Depends(get_current_user)):
    if user.get("role") != "volunteer":
        raise HTTPException(status_code=403, detail="Volunteer access required")
    return user


async def require_admin_or_volunteer(user: dict = Depends(get_current_user)):
    """
    Dependency to require admin or volunteer role.
    Raises HTTPException if user is neither admin nor volunteer.
    """
    if user.get("role") not in ["admin", "volunteer"]:
        raise HTTPException(status_code=403, detail="Admin or volunteer access required")
    return user


def get_audit(db=Depends(get_db)):
    return AuditCollaborator(db)


def get_ledger(db=Depends(get_db)):
    return PointsLedger(db)


def get_registry(db=Depends(get_db), audit=Depends(get_audit)):
    return AssignmentRegistry(db, audit)


def get_reviewer(db=Depends(get_db), ledger=Depends(get_ledger), audit=Depends(get_audit)):
    return WorkSubmissionReviewer(db, ledger, audit)


def get_coordinator(db=Depends(get_db), ledger=Depends(get_ledger), registry=Depends(get_registry), audit=Depends(get_audit)):
    return EventCompletionCoordinator(db, ledger, registry, audit)


def get_events(db=Depends(get_db), audit=Depends(get_audit)):
    return EventLifecycle(db, audit)
