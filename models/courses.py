from sqlalchemy import Column, Integer, BigInteger, String
from database import Base


class CourseConfig(Base):
    __tablename__ = "course_configs"

    name = Column(String(100), primary_key=True, index=True)  # e.g. "DCA"
    fee = Column(Integer, default=0)
    updated_at = Column(BigInteger)
