from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from pydantic import BaseModel
from crewplan.core.config import settings

ALGORITHM = "HS256"


class TokenData(BaseModel):
    employee_id: Optional[int] = None
    partner_id: Optional[int] = None


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a token. Production tokens come from the admin service; this is used by tests and tooling."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    if "sub" in to_encode:
        to_encode["sub"] = str(to_encode["sub"])
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        employee_id = payload.get("sub")
        partner_id = payload.get("partner_id")
        if employee_id is None or partner_id is None:
            return None
        return TokenData(employee_id=int(employee_id), partner_id=int(partner_id))
    except (JWTError, ValueError):
        return None
