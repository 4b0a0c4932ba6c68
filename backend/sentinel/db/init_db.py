# backend/sentinel/db/init_db.py

from sentinel.db.session import engine
from sentinel.db.base_class import Base

# Import models so they are registered with Base.metadata
from sentinel.models import (  # noqa: F401
    alert_record,
    event_record,
    remediation_log_record,
    user_profile_record,
)


def init_db(bind=None) -> None:
    """
    Create all tables.
    There is no migration tooling; schema changes need a manual step.
    """
    Base.metadata.create_all(bind=bind or engine)
