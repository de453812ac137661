from __future__ import annotations

import zlib
from typing import Any, Optional

import sqlalchemy
import sqlalchemy.types as types
from sqlalchemy import Column, String
from sqlalchemy.orm import Mapped, Session, declarative_base

from ccparse.builtin_info import BuiltInInfo

Base = declarative_base()

# Separates the entries of a compressed list, neither paths nor macro
# definitions produced by a compiler contain newlines
SEPARATOR = "\n"


def compress(s: str) -> bytes:
    return zlib.compress(s.encode("utf-8"), level=9)


def decompress(s: bytes) -> str:
    return zlib.decompress(s).decode("utf-8")


class CompressedStringList(types.TypeDecorator[list[str]]):
    """An ordered list of strings stored as one compressed blob."""

    impl = types.BLOB

    cache_ok = True

    def process_bind_param(
        self, value: Optional[list[str]], dialect: Any
    ) -> Optional[bytes]:
        if value is None:
            return None
        return compress(SEPARATOR.join(value))

    def process_result_value(self, value: Optional[bytes], dialect: Any) -> list[str]:
        if value is None:
            return []
        res = decompress(value)
        if not res:
            return []
        return res.split(SEPARATOR)


class CompilerInfo(Base):
    __tablename__ = "compiler_info"

    compiler: Mapped[str] = Column(String(), primary_key=True)
    includes: Mapped[list[str]] = Column(CompressedStringList(), nullable=False)
    defines: Mapped[list[str]] = Column(CompressedStringList(), nullable=False)

    def __repr__(self) -> str:
        return f"CompilerInfo({self.compiler} {len(self.includes)} includes {len(self.defines)} defines)"

    def to_builtin_info(self) -> BuiltInInfo:
        return BuiltInInfo(tuple(self.includes), tuple(self.defines))


class InfoDatabase:
    """Persistent cache of compiler built-in info.

    Example:

    db = InfoDatabase("sqlite:///compilers.db")
    source = GccBuiltInInfoSource(database=db)
    """

    def __init__(self, url: str) -> None:
        self.engine = sqlalchemy.create_engine(url)
        Base.metadata.create_all(self.engine)

    def load(self, compiler: str) -> BuiltInInfo | None:
        with Session(self.engine) as session:
            row = session.get(CompilerInfo, compiler)
            if row is None:
                return None
            return row.to_builtin_info()

    def store(self, compiler: str, info: BuiltInInfo) -> None:
        with Session(self.engine) as session:
            session.merge(
                CompilerInfo(
                    compiler=compiler,
                    includes=list(info.includes),
                    defines=list(info.defines),
                )
            )
            session.commit()

    def forget(self, compiler: str) -> bool:
        """Drops the stored info of `compiler`.

        Returns:
            bool:
                whether there was anything to drop
        """
        with Session(self.engine) as session:
            row = session.get(CompilerInfo, compiler)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True
