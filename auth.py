import logging
import re
import time
from typing import Callable, Optional, Tuple

import httpx
from fastapi import Depends, Header
from jose import jwt, JWTError

import settings
from errors import APIError

logger = logging.getLogger(__name__)

SECURETOKEN_CERTS_URL = "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
DEFAULT_CERTS_MAX_AGE = 3600


def fetch_securetoken_certs() -> Tuple[dict, float]:
    """Download the provider's signing certificates as ``({kid: pem}, max_age)``."""
    resp = httpx.get(SECURETOKEN_CERTS_URL, timeout=10)
    resp.raise_for_status()
    match = re.search(r"max-age=(\d+)", resp.headers.get("Cache-Control", ""))
    max_age = int(match.group(1)) if match else DEFAULT_CERTS_MAX_AGE
    return resp.json(), max_age


class TokenVerifier:
    """Verifies bearer credentials issued by the external identity provider.

    ``credentials`` holds either an HMAC ``secret`` or a PEM ``public_key``,
    plus optional ``algorithm``, ``audience`` and ``issuer``. When a
    ``project_id`` is given, audience and issuer follow the provider's
    securetoken conventions.

    A service-account file (``project_id``, ``private_key``, ``client_email``)
    carries neither key. Tokens are then checked with RS256 against the
    provider's published certificates, picked by the token's ``kid`` header
    and cached for as long as the certificate response allows.
    """

    def __init__(self, credentials: Optional[dict] = None,
                 fetch_certs: Optional[Callable[[], Tuple[dict, float]]] = None):
        credentials = credentials or {}
        self.key = credentials.get("public_key") or credentials.get("secret")
        default_alg = "RS256" if credentials.get("public_key") else "HS256"
        self.algorithm = credentials.get("algorithm", default_alg)
        project_id = credentials.get("project_id")
        self.audience = credentials.get("audience", project_id)
        self.issuer = credentials.get("issuer")
        if self.issuer is None and project_id:
            self.issuer = f"https://securetoken.google.com/{project_id}"

        self._fetch_certs = None
        self._certs = {}
        self._certs_expire_at = 0.0
        if self.key is None and project_id:
            self._fetch_certs = fetch_certs or fetch_securetoken_certs
            self.algorithm = "RS256"

    @property
    def initialized(self) -> bool:
        return self.key is not None or self._fetch_certs is not None

    def _current_certs(self) -> dict:
        if time.monotonic() >= self._certs_expire_at:
            try:
                certs, max_age = self._fetch_certs()
            except httpx.HTTPError as e:
                logger.error("Could not fetch signing certificates: %s", e)
                raise JWTError("Signing certificates unavailable")
            self._certs = certs
            self._certs_expire_at = time.monotonic() + max_age
        return self._certs

    def _signing_key(self, token: str):
        if self._fetch_certs is None:
            return self.key
        kid = jwt.get_unverified_header(token).get("kid")
        if not kid:
            raise JWTError("Token has no key id")
        cert = self._current_certs().get(kid)
        if cert is None:
            raise JWTError(f"Unknown key id {kid}")
        return cert

    def verify(self, token: str) -> dict:
        if not self.initialized:
            raise JWTError("Identity provider not initialized")
        options = {"verify_aud": self.audience is not None}
        return jwt.decode(
            token,
            self._signing_key(token),
            algorithms=[self.algorithm],
            audience=self.audience,
            issuer=self.issuer,
            options=options,
        )


verifier = TokenVerifier(settings.load_identity_credentials())


def get_verifier() -> TokenVerifier:
    return verifier


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


def require_admin(authorization: Optional[str] = Header(None),
                  verifier: TokenVerifier = Depends(get_verifier)) -> dict:
    """Generic admin guard: the token must carry ``admin: true``."""
    token = bearer_token(authorization)
    if token is None:
        raise APIError(401, "Unauthorized - No token provided")
    try:
        claims = verifier.verify(token)
    except JWTError:
        raise APIError(401, "Unauthorized - Invalid token")
    if claims.get("admin") is not True:
        raise APIError(403, "Forbidden - Admin access required")
    return claims


def require_email_domain(domain: str):
    """Build a guard that admits tokens whose email ends with ``domain``."""

    def _guard(authorization: Optional[str] = Header(None),
               verifier: TokenVerifier = Depends(get_verifier)) -> dict:
        token = bearer_token(authorization)
        if token is None:
            logger.info("Admin request without bearer token")
            raise APIError(401, "No bearer token")
        try:
            claims = verifier.verify(token)
        except JWTError as e:
            logger.warning("Token verification failed: %s", e)
            raise APIError(401, "Authentication failed", details=str(e))
        email = claims.get("email") or ""
        if not email.endswith(domain):
            logger.info("Rejected admin request from %s", email or "<no email>")
            raise APIError(403, "Not an authorized email domain")
        return claims

    return _guard
