"""Authentication: email/password accounts and persistent session tokens."""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import streamlit as st

from config import MIN_PASSWORD_LENGTH, PUBLIC_PAGES, SESSION_EXPIRY_DAYS
from db import get_db

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# bcrypt helpers
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


# ---------------------------------------------------------------------------
# Trader accounts
# ---------------------------------------------------------------------------

def _user_dict(row) -> dict:
    return {"id": row["id"], "email": row["email"], "display_name": row["display_name"]}


def create_user(email: str, password: str, display_name: Optional[str] = None) -> int:
    """Add a trader account and return its id.

    The email is normalised to lower case. A blank field, a short password
    or an email that is already taken raises ValueError.
    """
    email = (email or "").strip().lower()
    if not email or not password:
        raise ValueError("Email and password are required.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")

    name = display_name or email.split("@")[0]
    with get_db() as conn:
        try:
            cur = conn.execute(
                "INSERT INTO users (email, password_hash, display_name) VALUES (?, ?, ?)",
                (email, hash_password(password), name),
            )
        except sqlite3.IntegrityError as e:
            raise ValueError("An account with this email already exists.") from e
        user_id = cur.lastrowid
    logger.info("Registered user %s", email)
    return user_id


def authenticate_user(email: str, password: str) -> Optional[dict]:
    """The account for a matching email/password pair; None on a mismatch."""
    email = (email or "").strip().lower()
    with get_db() as conn:
        row = conn.execute(
            "SELECT id, email, password_hash, display_name FROM users WHERE email = ?",
            (email,),
        ).fetchone()
    if row and verify_password(password, row["password_hash"]):
        return _user_dict(row)
    logger.warning("Failed login for %s", email)
    return None


def get_user_by_id(user_id: int) -> Optional[dict]:
    with get_db() as conn:
        row = conn.execute(
            "SELECT id, email, display_name FROM users WHERE id = ?", (user_id,)
        ).fetchone()
    return _user_dict(row) if row else None


# ---------------------------------------------------------------------------
# Session tokens (shared by the Streamlit pages and the JSON API)
# ---------------------------------------------------------------------------

def create_session_token(user_id: int) -> str:
    """Issue a token valid for SESSION_EXPIRY_DAYS and purge stale ones."""
    token = uuid.uuid4().hex
    now = datetime.now(timezone.utc)
    expires = now + timedelta(days=SESSION_EXPIRY_DAYS)
    with get_db() as conn:
        conn.execute("DELETE FROM session_tokens WHERE expires_at < ?", (now.isoformat(),))
        conn.execute(
            "INSERT INTO session_tokens (token, user_id, expires_at) VALUES (?, ?, ?)",
            (token, user_id, expires.isoformat()),
        )
    return token


def get_user_by_token(token: str) -> Optional[dict]:
    if not token:
        return None
    with get_db() as conn:
        row = conn.execute(
            """SELECT u.id, u.email, u.display_name
               FROM session_tokens t JOIN users u ON t.user_id = u.id
               WHERE t.token = ? AND t.expires_at > ?""",
            (token, datetime.now(timezone.utc).isoformat()),
        ).fetchone()
    return _user_dict(row) if row else None


def delete_session_token(token: str):
    with get_db() as conn:
        conn.execute("DELETE FROM session_tokens WHERE token = ?", (token,))


# ---------------------------------------------------------------------------
# Page access
# ---------------------------------------------------------------------------

def can_access(page: str, user: Optional[dict]) -> bool:
    """Home and the monthly log are open to guests; every other page needs a login."""
    return page in PUBLIC_PAGES or user is not None


# ---------------------------------------------------------------------------
# Streamlit login state, carried in the ?session= query parameter
# ---------------------------------------------------------------------------

def get_current_user() -> Optional[dict]:
    """The logged-in trader for this browser tab, or None for a guest."""
    user = st.session_state.get("user")
    if user:
        return user

    token = st.query_params.get("session")
    if not token:
        return None
    user = get_user_by_token(token)
    if user is None:
        # stale link
        del st.query_params["session"]
        return None
    st.session_state["user"] = user
    return user


def login_user(user: dict):
    st.session_state["user"] = user
    st.query_params["session"] = create_session_token(user["id"])


def logout_user():
    token = st.query_params.get("session")
    if token:
        delete_session_token(token)
        del st.query_params["session"]
    st.session_state.pop("user", None)


# ---------------------------------------------------------------------------
# Sidebar and login screen
# ---------------------------------------------------------------------------

def render_sidebar_user_info(user: Optional[dict]):
    with st.sidebar:
        if not user:
            st.caption("Viewing as guest. Log in from any protected page.")
            return
        st.markdown(f"**{user['display_name']}**")
        st.caption(user["email"])
        if st.button("Log out", key="sidebar_logout"):
            logout_user()
            st.rerun()


def _render_login_form():
    with st.form("login_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Log in", use_container_width=True)

    if not submitted:
        return
    if not email or not password:
        st.error("Enter your email and password.")
        return
    user = authenticate_user(email, password)
    if user is None:
        st.error("Invalid email or password.")
        return
    login_user(user)
    st.rerun()


def _render_register_form():
    with st.form("register_form"):
        email = st.text_input("Email", key="reg_email")
        display_name = st.text_input("Name shown on the journal (optional)", key="reg_name")
        password = st.text_input("Password", type="password", key="reg_pass")
        confirm = st.text_input("Repeat password", type="password", key="reg_confirm")
        submitted = st.form_submit_button("Create account", use_container_width=True)

    if not submitted:
        return
    if password != confirm:
        st.error("The two passwords differ.")
        return
    try:
        user_id = create_user(email, password, display_name or None)
    except ValueError as e:
        st.error(str(e))
        return
    login_user(get_user_by_id(user_id))
    st.toast("Account created")
    st.rerun()


def require_auth(page: str) -> Optional[dict]:
    """Gate a page by name and return the current user.

    Guests on a protected page see the login and register tabs, and the
    script stops there.
    """
    user = get_current_user()
    if can_access(page, user):
        render_sidebar_user_info(user)
        return user

    st.title("Login Required")
    st.caption("Sign in to upload logs, compare re-runs and view the dashboard.")

    tab_login, tab_register = st.tabs(["Log in", "Register"])
    with tab_login:
        _render_login_form()
    with tab_register:
        _render_register_form()

    st.stop()
