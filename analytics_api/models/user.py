"""
User model - the subset of the dashboard's 'user' table we read.

The dashboard owns this table and its migrations; the ingestion API only
looks users up by the access token their SDK sends.
"""

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from analytics_api.core.db import Base


class User(Base):
    """
    User account.

    Attributes:
        id: Primary key (text id issued by the auth provider)
        email: Account email, only used for debugging output
        access_token: Opaque token the SDK sends as Bearer credentials
    """

    __tablename__ = "user"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    access_token: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email='{self.email}'>"
