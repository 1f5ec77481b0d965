from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from udsp.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(200), unique=True)
    hashed_password = Column(String(200), nullable=False)
    role = Column(String(20), nullable=False, default="staff")  # "admin" | "staff"
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100))
    is_active = Column(Boolean, nullable=False, default=True)
    mobile = Column(String(10), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    test_data = relationship("TestData", back_populates="user", cascade="all, delete-orphan")

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
