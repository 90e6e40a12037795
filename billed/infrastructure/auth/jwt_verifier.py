from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt


class JwtTokenVerifier:
    def __init__(self, secret: str, *, algorithm: str = "HS256", expire_minutes: int = 24 * 60) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(self, email: str, *, expires_delta: timedelta | None = None) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.expire_minutes))
        claims = {"sub": email, "data": {"email": email}, "iat": now, "exp": expire}
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as exc:
            raise ValueError(str(exc)) from exc

        data = payload.get("data")
        email = data.get("email") if isinstance(data, dict) else None
        email = email or payload.get("sub")
        if not isinstance(email, str) or not email.strip():
            raise ValueError("token carries no email claim")
        return email.strip()
