"""SQLAlchemy ORM models.

The unit reference table is written by the NEMweb loader, not by this service.
The model exists so the schema is declared in one place (tests create it with
`Base.metadata.create_all`).
"""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import declarative_base


# Single Base used by the entire application
Base = declarative_base()


class Unit(Base):
    """A generating unit (DUID) registered in the NEM."""

    __tablename__ = "units"

    id = Column(Integer, primary_key=True, autoincrement=True)
    duid = Column(String, nullable=False, unique=True, index=True)
    station_name = Column(String, nullable=True)
    region_id = Column(String, nullable=True, index=True)
    fuel_source = Column(String, nullable=True)
    technology_type = Column(String, nullable=True)
    max_capacity = Column(Integer, nullable=True)

    def __str__(self):
        return f"{self.duid} ({self.station_name})"
