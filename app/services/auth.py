import base64
import hashlib
import hmac
import json
import logging
import time

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.sql import CompanyDB, PersonalUserDB

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    pass


class InvalidTokenError(Exception):
    pass


class TokenSignatureError(InvalidTokenError):
    pass


class TokenExpiredError(InvalidTokenError):
    pass


def normalize_user_type(user_type: str | None) -> str:
    return "company" if user_type == "company" else "personal"


async def authenticate(session: AsyncSession, user_id: str, name: str, user_type: str | None) -> dict:
    """
    Looks the customer up by id and checks the registered name
    (case-insensitive, surrounding whitespace ignored).
    """
    user_type = normalize_user_type(user_type)
    user_id = user_id.strip()

    if user_type == "company":
        record = await session.get(CompanyDB, user_id)
    else:
        try:
            customer_number = int(user_id)
        except ValueError as e:
            raise AuthenticationError("Invalid customer number") from e
        record = await session.get(PersonalUserDB, customer_number)

    if record is None or record.name.strip().casefold() != name.strip().casefold():
        logger.info(f"Failed login for {user_type} {user_id}")
        raise AuthenticationError("Invalid credentials")

    return {"id": str(record.id), "name": record.name, "type": user_type}


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _b64decode(encoded: str) -> bytes:
    return base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))


def _signature(encoded_payload: str, secret: str) -> str:
    return hmac.new(secret.encode(), encoded_payload.encode(), hashlib.sha256).hexdigest()


def issue_token(user: dict, secret: str, issued_at: int | None = None) -> str:
    """Signed session token: base64url(JSON payload) + "." + hex HMAC-SHA256."""
    payload = {
        "id": user["id"],
        "type": user["type"],
        "name": user["name"],
        "iat": int(time.time()) if issued_at is None else issued_at,
    }
    encoded = _b64encode(json.dumps(payload, separators=(",", ":")).encode())
    return f"{encoded}.{_signature(encoded, secret)}"


def read_token(token: str, secret: str, ttl_seconds: int, now: int | None = None) -> dict:
    encoded, sep, received_signature = token.rpartition(".")
    if not sep or not encoded:
        raise InvalidTokenError("Malformed token")

    if not hmac.compare_digest(_signature(encoded, secret), received_signature):
        raise TokenSignatureError("Token signature mismatch")

    try:
        payload = json.loads(_b64decode(encoded))
        issued_at = int(payload["iat"])
        user = {"id": str(payload["id"]), "type": normalize_user_type(payload["type"]), "name": payload["name"]}
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidTokenError("Malformed token payload") from e

    now = int(time.time()) if now is None else now
    if now - issued_at > ttl_seconds:
        raise TokenExpiredError("Session expired")

    return user
