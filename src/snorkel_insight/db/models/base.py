"""Declarative base shared by all warehouse tables."""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
