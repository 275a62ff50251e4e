from typing import Optional

from sqlalchemy import BigInteger, Column, Integer
from sqlmodel import SQLModel, Field

# BIGINT ids on Postgres; SQLite only autoincrements INTEGER primary keys
BIG_ID = BigInteger().with_variant(Integer, "sqlite")


class Customer(SQLModel, table=True):
    __tablename__ = "customer"

    id: Optional[int] = Field(default=None, sa_column=Column(BIG_ID, primary_key=True, autoincrement=True))
    nama: str
    telp: Optional[str] = None


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(primary_key=True)
    name: Optional[str] = None
    email: Optional[str] = Field(default=None, index=True)
    role: Optional[str] = None
