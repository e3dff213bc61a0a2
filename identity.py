"""
Identity provider seam.

Sign-in itself happens in the client against Firebase Auth; this service only
verifies the ID tokens it is handed and performs the account operations that
need admin credentials.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from errors import IdentityError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None


class IdentityProvider(ABC):
    """Operations the API needs from the hosted auth service."""

    @abstractmethod
    def verify_token(self, token: str) -> Identity: ...

    @abstractmethod
    def create_user(self, email: str, password: str, display_name: str) -> Identity: ...

    @abstractmethod
    def update_user(self, uid: str, display_name: str, photo_url: Optional[str] = None) -> None: ...

    @abstractmethod
    def password_reset_link(self, email: str) -> str: ...


class FirebaseIdentityProvider(IdentityProvider):
    def __init__(self, credentials_path: Optional[str] = None):
        self.credentials_path = credentials_path

    def _auth(self):
        import firebase_admin
        from firebase_admin import auth, credentials

        if not firebase_admin._apps:
            cred = credentials.Certificate(self.credentials_path) if self.credentials_path else None
            firebase_admin.initialize_app(cred)
        return auth

    def verify_token(self, token: str) -> Identity:
        from firebase_admin import exceptions

        auth = self._auth()
        try:
            decoded = auth.verify_id_token(token)
        except (ValueError, exceptions.FirebaseError) as e:
            logger.info("Rejected ID token: %s", e)
            raise IdentityError("Invalid or expired token", status_code=401) from e
        return Identity(uid=decoded["uid"], email=decoded.get("email"), display_name=decoded.get("name"))

    def create_user(self, email: str, password: str, display_name: str) -> Identity:
        from firebase_admin import exceptions

        auth = self._auth()
        try:
            record = auth.create_user(email=email, password=password, display_name=display_name)
        except (ValueError, exceptions.FirebaseError) as e:
            raise IdentityError(str(e)) from e
        return Identity(uid=record.uid, email=record.email, display_name=record.display_name)

    def update_user(self, uid: str, display_name: str, photo_url: Optional[str] = None) -> None:
        from firebase_admin import exceptions

        auth = self._auth()
        kwargs = {"display_name": display_name}
        if photo_url:
            kwargs["photo_url"] = photo_url
        try:
            auth.update_user(uid, **kwargs)
        except (ValueError, exceptions.FirebaseError) as e:
            raise IdentityError(str(e)) from e

    def password_reset_link(self, email: str) -> str:
        from firebase_admin import exceptions

        auth = self._auth()
        try:
            return auth.generate_password_reset_link(email)
        except (ValueError, exceptions.FirebaseError) as e:
            raise IdentityError(str(e)) from e
