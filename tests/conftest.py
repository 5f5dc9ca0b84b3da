import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

import database
import notifications
from database import Base, Category, Expense, SavingsGoal, User
from presence import presence

engine = create_engine(
    "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
)
# every SessionLocal() in the app now talks to the shared in-memory database
database.SessionLocal.configure(bind=engine)

NOW = datetime(2024, 3, 15, 12, 0)


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    presence.clear()


@pytest.fixture(autouse=True)
def sent(monkeypatch):
    """Notifications dispatched during the test, as ``(user_id, payload)``."""
    recorded = []
    monkeypatch.setattr(notifications, "dispatch", lambda user_id, payload: recorded.append((user_id, payload)))
    return recorded


@pytest.fixture
def db():
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _add_user(db, email, name):
    user = User(email=email, name=name, password="x", device_tokens=[])
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db):
    return _add_user(db, "ana@example.com", "Ana")


@pytest.fixture
def other_user(db):
    return _add_user(db, "ben@example.com", "Ben")


@pytest.fixture
def make_category(db):
    def build(user, name, monthly_budget=None, **extra):
        category = Category(user_id=user.id, name=name, monthly_budget=monthly_budget, **extra)
        db.add(category)
        db.commit()
        db.refresh(category)
        return category

    return build


@pytest.fixture
def make_expense(db):
    def build(user, category, amount, date=NOW, **extra):
        expense = Expense(
            user_id=user.id, category_id=category.id, amount=amount, date=date, **extra
        )
        db.add(expense)
        db.commit()
        db.refresh(expense)
        return expense

    return build


@pytest.fixture
def make_goal(db):
    def build(user, title="Emergency fund", target_amount=1000, **extra):
        goal = SavingsGoal(user_id=user.id, title=title, target_amount=target_amount, **extra)
        db.add(goal)
        db.commit()
        db.refresh(goal)
        return goal

    return build
