from jose import JWTError, jwt

from orgledger.config import settings


def decode_token(token: str) -> dict | None:
    """Verify a bearer token issued by the identity provider."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return payload
    except JWTError:
        return None
