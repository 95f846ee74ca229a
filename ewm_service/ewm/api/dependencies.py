"""
Dependency injection for EWM Service.
Provides authentication dependencies for the admin API.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Dict, Any

from ewm.services.jwt_service import JWTService, jwt_service

# Security scheme
security = HTTPBearer()


async def get_jwt_service() -> JWTService:
    """
    Get JWT service dependency.

    Returns:
        JWT service instance
    """
    if not jwt_service._initialized:
        await jwt_service.initialize()
    return jwt_service


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    jwt_svc: JWTService = Depends(get_jwt_service)
) -> Dict[str, Any]:
    """
    Get current authenticated user dependency.

    Raises:
        HTTPException: If the token is missing or invalid
    """
    user_data = jwt_svc.verify_token(credentials.credentials)

    if user_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user_data


async def get_current_admin_user(
    current_user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    """
    Get current admin user dependency.

    Raises:
        HTTPException: If user is not admin
    """
    if not JWTService.can_moderate(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return current_user
