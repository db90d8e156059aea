from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rtschedule.models import SchedulerConfig
from rtschedule_web.config import get_config
from rtschedule_web.database import Base, get_db
from rtschedule_web.main import app
from rtschedule_web.models import ScheduleCycle, Shift, Therapist, WorkPattern


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def config():
    return SchedulerConfig()


@pytest.fixture
def client(session_factory, config):
    def override_get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_config] = lambda: config
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_therapist(db, name, shift_type="day", employment_type="full_time", lead=False,
                   pattern=None, **kwargs):
    t = Therapist(full_name=name, shift_type=shift_type, employment_type=employment_type,
                  is_lead_eligible=lead, is_active=kwargs.pop("is_active", True),
                  on_fmla=kwargs.pop("on_fmla", False), **kwargs)
    if pattern is not None:
        t.pattern = WorkPattern(**pattern)
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


def make_cycle(db, start=date(2026, 1, 5), end=date(2026, 1, 18), label="Jan A", published=False):
    c = ScheduleCycle(label=label, start_date=start, end_date=end, published=published)
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def make_shift(db, cycle, therapist, on, shift_type="day", role="staff", status="scheduled"):
    s = Shift(cycle_id=cycle.id, user_id=therapist.id, date=on, shift_type=shift_type,
              role=role, status=status, assignment_status="scheduled")
    db.add(s)
    db.commit()
    db.refresh(s)
    return s
