#!/usr/bin/env python3
"""
Simple authentication for the fitness tracker.
Users sign in with an email and password; each account gets a stable uid
that keys its fitness data.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

import streamlit as st

from storage import DATABASE_ERRORS, Storage

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class User:
    uid: str
    email: str


def _hash_password(password: str, salt: Optional[str] = None) -> Tuple[str, str]:
    """Hash a password with a salt. Returns (hashed_password, salt)"""
    if salt is None:
        salt = secrets.token_hex(16)
    # Use PBKDF2 for secure password hashing
    hashed = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt.encode('utf-8'), 100000)
    return hashed.hex(), salt


def _verify_password(password: str, hashed_password: str, salt: str) -> bool:
    test_hash, _ = _hash_password(password, salt)
    return secrets.compare_digest(test_hash, hashed_password)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Accounts and sessions stored alongside the entry tables."""

    def __init__(self, storage: Storage, session_hours: int = 24, now: Callable[[], datetime] = _utcnow):
        self.storage = storage
        self.session_hours = session_hours
        self._now = now

    def init_tables(self) -> None:
        with self.storage.transaction() as db:
            db.execute(
                """
                CREATE TABLE IF NOT EXISTS auth_users (
                    email TEXT PRIMARY KEY,
                    uid TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    salt TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    last_login TEXT
                );
                """
            )
            db.execute(
                """
                CREATE TABLE IF NOT EXISTS auth_sessions (
                    session_id TEXT PRIMARY KEY,
                    uid TEXT NOT NULL,
                    email TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL
                );
                """
            )

    def register(self, email: str, password: str) -> Optional[User]:
        """Create an account. Returns None if the email is already taken."""
        email = normalize_email(email)
        with self.storage.transaction() as db:
            if db.execute("SELECT uid FROM auth_users WHERE email = :e", {"e": email}):
                return None
            password_hash, salt = _hash_password(password)
            user = User(uid=f"user-{uuid.uuid4().hex}", email=email)
            db.execute(
                """
                INSERT INTO auth_users (email, uid, password_hash, salt, created_at)
                VALUES (:e, :u, :p, :s, :c)
                """,
                {"e": email, "u": user.uid, "p": password_hash, "s": salt, "c": self._now().isoformat()},
            )
        logger.info("Registered user %s", user.uid)
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        email = normalize_email(email)
        with self.storage.transaction() as db:
            rows = db.execute("SELECT uid, password_hash, salt FROM auth_users WHERE email = :e", {"e": email})
            if not rows:
                return None
            uid, password_hash, salt = rows[0]
            if not _verify_password(password, password_hash, salt):
                return None
            db.execute(
                "UPDATE auth_users SET last_login = :t WHERE email = :e",
                {"t": self._now().isoformat(), "e": email},
            )
        return User(uid=uid, email=email)

    def create_session(self, user: User) -> str:
        """Create a new session for a user. Returns session ID."""
        session_id = secrets.token_urlsafe(32)
        now = self._now()
        with self.storage.transaction() as db:
            db.execute(
                """
                INSERT INTO auth_sessions (session_id, uid, email, created_at, expires_at)
                VALUES (:sid, :uid, :email, :c, :x)
                """,
                {
                    "sid": session_id,
                    "uid": user.uid,
                    "email": user.email,
                    "c": now.isoformat(),
                    "x": (now + timedelta(hours=self.session_hours)).isoformat(),
                },
            )
        return session_id

    def validate_session(self, session_id: str) -> Optional[User]:
        """Return the session's user, or None if it is unknown or expired."""
        with self.storage.transaction() as db:
            rows = db.execute(
                "SELECT uid, email FROM auth_sessions WHERE session_id = :sid AND expires_at > :now",
                {"sid": session_id, "now": self._now().isoformat()},
            )
        return User(uid=rows[0][0], email=rows[0][1]) if rows else None

    def logout_session(self, session_id: str) -> None:
        with self.storage.transaction() as db:
            db.execute("DELETE FROM auth_sessions WHERE session_id = :sid", {"sid": session_id})

    def cleanup_expired_sessions(self) -> None:
        with self.storage.transaction() as db:
            db.execute("DELETE FROM auth_sessions WHERE expires_at <= :now", {"now": self._now().isoformat()})


# -------------------- Streamlit helpers --------------------

def get_current_user(auth: AuthService) -> Optional[User]:
    """Get the currently authenticated user from Streamlit session state."""
    session_id = st.session_state.get("auth_session_id")
    if not session_id:
        return None
    try:
        user = auth.validate_session(session_id)
    except DATABASE_ERRORS:
        logger.exception("Session lookup failed")
        user = None
    # If session is invalid/expired, clean up session state
    if user is None:
        st.session_state.pop("auth_session_id", None)
    return user


def require_auth(auth: AuthService) -> Optional[User]:
    """Return the signed-in user, or render the login form and return None."""
    user = get_current_user(auth)
    if user is None:
        show_auth_form(auth)
    return user


def show_auth_form(auth: AuthService) -> None:
    st.title("🔐 Fitness Tracker Login")

    tab1, tab2 = st.tabs(["Sign In", "Sign Up"])

    with tab1:
        with st.form("login_form"):
            email = st.text_input("Email", placeholder="you@example.com")
            password = st.text_input("Password", type="password")
            if st.form_submit_button("Sign In", type="primary"):
                if not email or not password:
                    st.error("Please enter both email and password")
                else:
                    user = auth.authenticate(email, password)
                    if user is None:
                        st.error("Invalid email or password")
                    else:
                        st.session_state.auth_session_id = auth.create_session(user)
                        st.rerun()

    with tab2:
        with st.form("register_form"):
            new_email = st.text_input("Email", key="reg_email")
            new_password = st.text_input("Password", type="password", key="reg_password")
            confirm_password = st.text_input("Confirm Password", type="password", key="reg_confirm")
            if st.form_submit_button("Sign Up", type="primary"):
                if not new_email or not new_password or not confirm_password:
                    st.error("Please fill in all fields")
                elif new_password != confirm_password:
                    st.error("Passwords do not match")
                elif len(new_password) < MIN_PASSWORD_LENGTH:
                    st.error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
                elif auth.register(new_email, new_password) is None:
                    st.error("An account with this email already exists.")
                else:
                    st.success("Account created successfully! Please sign in.")


def logout(auth: AuthService) -> None:
    session_id = st.session_state.pop("auth_session_id", None)
    if session_id:
        auth.logout_session(session_id)
    st.rerun()
