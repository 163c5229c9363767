"""
Password hashing for organization accounts.
"""

from passlib.context import CryptContext


class PasswordManager:
    """bcrypt password hashing via passlib."""

    def __init__(self):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

    def hash_password(self, password: str) -> str:
        """Hash a plain-text password."""
        return self.pwd_context.hash(password)


# Global instance
password_manager = PasswordManager()
