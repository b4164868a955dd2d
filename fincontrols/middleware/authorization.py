from fastapi import Depends, HTTPException, status

from fincontrols.actor import ActorContext
from fincontrols.middleware.auth import get_current_actor


def require_roles(*allowed_roles: str):
    """
    FastAPI dependency factory for role-based access control.

    Usage:
        @router.post("/period-locks")
        async def lock_period(
            actor: ActorContext = Depends(get_current_actor),
            _auth: None = Depends(require_roles(*PERIOD_ADMIN_ROLES)),
        ):
    """
    async def check_role(actor: ActorContext = Depends(get_current_actor)):
        if actor.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": {
                        "code": "INSUFFICIENT_PERMISSIONS",
                        "message": (
                            f"Role '{actor.role}' cannot perform this action. "
                            f"Required: {sorted(allowed_roles)}"
                        ),
                    }
                },
            )
        return None

    return check_role
