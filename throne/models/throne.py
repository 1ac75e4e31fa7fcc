"""Throne database model."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String

from throne.database.base import Base

THRONE_ID = "current"


class Throne(Base):
    """
    Singleton record of the current holder.

    Only one row (id "current") ever exists. The version column makes
    concurrent replacements conflict instead of overwriting each other.
    """

    __tablename__ = "throne"

    id = Column(String(16), primary_key=True, default=THRONE_ID)

    holder_id = Column(
        String(128),
        ForeignKey("bidders.id"),
        nullable=False,
    )
    holder_name = Column(String(100), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    crowned_at = Column(DateTime(timezone=True), nullable=False)
    payment_reference = Column(String(255), nullable=False)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Throne {self.holder_name} ${self.amount}>"
