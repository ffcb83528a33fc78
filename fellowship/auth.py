import os
from jose import jwt, JWTError
from datetime import datetime, timedelta, timezone
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

# Tokens are issued by the auth provider; we only verify them.
# Prefer JWT_SECRET but support legacy JWT_SECRET_KEY for compatibility
SECRET = os.getenv('JWT_SECRET') or os.getenv('JWT_SECRET_KEY', 'devsecret')
ALGORITHM = os.getenv('JWT_ALGORITHM', 'HS256')
AUDIENCE = os.getenv('JWT_AUDIENCE', 'authenticated')

bearer_scheme = HTTPBearer(auto_error=False)

def create_access_token(user_id: str, expires_delta: timedelta = None, **claims):
    """Mint a provider-compatible token (used by tests and local tooling)."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
    to_encode = {'sub': user_id, 'aud': AUDIENCE, 'role': 'authenticated', 'exp': expire}
    to_encode.update(claims)
    return jwt.encode(to_encode, SECRET, algorithm=ALGORITHM)

def decode_token(token: str):
    try:
        payload = jwt.decode(token, SECRET, algorithms=[ALGORITHM], audience=AUDIENCE)
        return payload
    except JWTError:
        return None

async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> dict:
    if credentials is None:
        raise HTTPException(status_code=401, detail='Not signed in')
    payload = decode_token(credentials.credentials)
    if not payload or not payload.get('sub'):
        raise HTTPException(status_code=401, detail='Invalid token')
    return {'id': payload['sub'], 'email': payload.get('email'), 'role': payload.get('role')}
