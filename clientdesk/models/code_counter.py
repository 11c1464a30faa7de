from sqlalchemy import Column, Integer, String

from clientdesk.core.database import Base


class CodeCounter(Base):
    """Last sequence number handed out for a code scope such as ``PRJ:26``"""

    __tablename__ = "code_counters"

    scope = Column(String(64), primary_key=True)
    value = Column(Integer, nullable=False, default=0)
