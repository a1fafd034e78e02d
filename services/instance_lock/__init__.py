"""Single instance registration on the session bus."""

from services.instance_lock.session_name import SessionNameClaim

__all__ = ["SessionNameClaim"]
