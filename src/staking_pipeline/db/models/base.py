from sqlalchemy import JSON, Column, DateTime, Numeric, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# uint256 token amounts
TokenAmount = Numeric(78, 0)

# JSONB on Postgres, plain JSON elsewhere
JSONList = JSON().with_variant(JSONB(), "postgresql")


class TimestampMixin:
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, default=func.now(), onupdate=func.now(), nullable=False
    )
