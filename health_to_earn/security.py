# health_to_earn/security.py
from fastapi import Header, HTTPException, Request, status

def require_admin(request: Request, authorization: str | None = Header(None)):
    token = request.app.state.settings.ADMIN_TOKEN
    if token is None:
        return
    expected = f"Bearer {token}"
    if authorization != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
