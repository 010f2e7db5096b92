# zlot/models/profile.py
"""User profiles: admin role fallback and display names in admin lists."""

from sqlalchemy import Column, String, Boolean
from zlot.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)        # same id as the identity provider user
    email = Column(String(320))
    full_name = Column(String(200))
    role = Column(String(50))
    account_type = Column(String(50))
    is_admin = Column(Boolean, default=False)

    def __repr__(self):
        return f"<Profile {self.id} role={self.role or self.account_type}>"
