from sqlalchemy import Column, Integer, BigInteger
from database import Base

STATS_ROW_ID = 1


# Global singleton - har sync par poora recompute hota hai
class AggregateStats(Base):
    __tablename__ = "aggregate_stats"

    id = Column(Integer, primary_key=True, default=STATS_ROW_ID)
    total_enrollments = Column(Integer, default=0)
    thiriya_count = Column(Integer, default=0)
    nariyawal_count = Column(Integer, default=0)
    total_revenue = Column(BigInteger, default=0)
    total_arrears = Column(BigInteger, default=0)
    updated_at = Column(BigInteger)
