import json
import logging
from functools import wraps
from typing import Dict, NamedTuple, Optional

from flask import jsonify, session
from werkzeug.security import check_password_hash, generate_password_hash

ROLES = ('admin', 'teacher', 'staff', 'parent', 'student')

# Used only when no USERS_FILE is configured
DEMO_ACCOUNTS = {
    'admin': {'password': 'admin123', 'role': 'admin', 'name': 'System Administrator'},
    'teacher': {'password': 'teacher123', 'role': 'teacher', 'name': 'John Teacher'},
    'staff': {'password': 'staff123', 'role': 'staff', 'name': 'Jane Staff'},
    'parent': {'password': 'parent123', 'role': 'parent', 'name': 'Parent User'},
    'student': {'password': 'student123', 'role': 'student', 'name': 'Student User'},
}


class SessionUser(NamedTuple):
    user_id: str
    role: str
    name: str


class UserDirectory:
    """
    Username -> (password hash, role, display name).

    Stand-in for a real identity provider: callers only rely on
    authenticate() returning a SessionUser or None.
    """

    def __init__(self, accounts: Dict[str, Dict[str, str]]):
        self.logger = logging.getLogger(__name__)
        self.accounts = accounts

    @classmethod
    def from_plaintext(cls, accounts: Dict[str, Dict[str, str]]) -> 'UserDirectory':
        return cls({
            username: {
                'password_hash': generate_password_hash(info['password']),
                'role': info['role'],
                'name': info.get('name', username),
            }
            for username, info in accounts.items()
        })

    @classmethod
    def from_file(cls, path: str) -> 'UserDirectory':
        """Load a JSON object of {username: {password_hash, role, name}}."""
        with open(path, encoding='utf-8') as f:
            accounts = json.load(f)
        for username, info in accounts.items():
            if info.get('role') not in ROLES:
                raise ValueError(f"User '{username}' has unknown role: {info.get('role')}")
        return cls(accounts)

    def authenticate(self, username: str, password: str, role: str) -> Optional[SessionUser]:
        account = self.accounts.get(username)
        if account is None or account['role'] != role:
            self.logger.warning(f"Rejected login for '{username}' as {role}")
            return None
        if not check_password_hash(account['password_hash'], password):
            self.logger.warning(f"Rejected login for '{username}' as {role}")
            return None
        return SessionUser(username, account['role'], account.get('name', username))

    def lookup(self, username: str) -> Optional[SessionUser]:
        account = self.accounts.get(username)
        if account is None:
            return None
        return SessionUser(username, account['role'], account.get('name', username))


def role_affordances(role: Optional[str]) -> Dict[str, bool]:
    """Which parts of the dashboard a role gets to see. Never restricts store operations."""
    return {
        'adminFeatures': role == 'admin',
        'teacherFeatures': role in ('admin', 'teacher'),
    }


def login_required(view):
    @wraps(view)
    def wrapped_view(**kwargs):
        if session.get('user_id') is None:
            return jsonify({'error': 'Login required'}), 401
        return view(**kwargs)

    return wrapped_view
