from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from courier.config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET_KEY


def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes or ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    # raises jwt.PyJWTError on bad signature or expiry
    return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
