"""
Pytest configuration and fixtures

Every test that touches the database gets its own in-memory SQLite
database: the schema is created before the test and discarded after it,
so nothing created during a test leaks into another.
"""
import pytest
import sys
import os
from uuid import uuid4
from datetime import date, datetime

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base, get_db
from models import BodyWeight, ExerciseLog, FoodCatalogItem, FoodLog, UserProfile, WorkoutLog
from food_helpers import make_food


@pytest.fixture(scope="function")
def db_session():
    """In-memory database session, schema created fresh per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)
    session = TestingSession()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def client(db_session):
    """TestClient with get_db bound to the test session."""
    from main import app

    def _override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def test_user(db_session):
    """A stored profile: 30y male, 80kg, 180cm, moderately active, muscle gain."""
    user = UserProfile(
        id=uuid4(),
        display_name="Test Lifter",
        age=30,
        sex="male",
        weight_kg=80.0,
        height_cm=180.0,
        activity_level="moderately_active",
        goal="muscle_gain",
        dietary_restrictions=[],
        allergies=[],
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def stored_logs(db_session, test_user):
    """Five bench sessions, daily meals and weights in June 2024."""
    loads = [100, 100, 101, 100, 99]
    for i, load in enumerate(loads):
        workout = WorkoutLog(
            user_id=test_user.id,
            performed_at=datetime(2024, 6, 3 + 2 * i, 18, 0),
            workout_type="strength",
            duration_minutes=60,
        )
        workout.exercises = [
            ExerciseLog(position=0, exercise_name="Bench Press", sets=3, reps=5, weight_kg=load, rpe=8),
            ExerciseLog(position=1, exercise_name="Barbell Row", sets=3, reps=8, weight_kg=60, rpe=None),
        ]
        db_session.add(workout)

    for day in range(1, 15):
        db_session.add(FoodLog(
            user_id=test_user.id,
            logged_at=datetime(2024, 6, day, 8, 0),
            name="Oats and eggs",
            calories=700,
            protein_g=45,
            carbs_g=80,
            fat_g=20,
        ))
        db_session.add(FoodLog(
            user_id=test_user.id,
            logged_at=datetime(2024, 6, day, 19, 0),
            name="Chicken and rice",
            calories=900,
            protein_g=70,
            carbs_g=100,
            fat_g=20,
        ))

    for day in range(1, 15, 2):
        db_session.add(BodyWeight(user_id=test_user.id, date=date(2024, 6, day), weight_kg=80.0 + day * 0.05))

    db_session.commit()
    return test_user


@pytest.fixture
def food_pool():
    """A small catalog spanning the main categories."""
    return [
        make_food("1", "Chicken Breast", 165, 31, 0, 3.6, density=9, satiety=8, cost=2.50, prep=15),
        make_food("2", "Brown Rice", 112, 2.6, 23, 0.9, density=7, satiety=6, cost=0.75, prep=25, fiber=1.8),
        make_food("3", "Rolled Oats", 150, 5, 27, 3, density=8, satiety=7, cost=0.30, prep=5, fiber=4),
        make_food("4", "Greek Yogurt", 100, 10, 4, 5, density=7, satiety=6, cost=1.00, prep=0),
        make_food("5", "Whole Eggs", 140, 12, 1, 10, density=8, satiety=7, cost=0.60, prep=10),
        make_food("6", "Banana", 105, 1.3, 27, 0.4, density=6, satiety=4, cost=0.25, prep=0, fiber=3.1),
        make_food("7", "Salmon Fillet", 208, 20, 0, 13, density=9, satiety=7, cost=4.00, prep=20),
        make_food("8", "Turkey Breast", 135, 30, 0, 1.5, density=8, satiety=8, cost=2.20, prep=15),
        make_food("9", "Whey Protein", 120, 24, 3, 1.5, density=6, satiety=4, cost=1.50, prep=1),
        make_food("10", "White Rice", 130, 2.7, 28, 0.3, density=5, satiety=5, cost=0.40, prep=20),
    ]


@pytest.fixture
def stored_catalog(db_session, food_pool):
    for food in food_pool:
        db_session.add(FoodCatalogItem(
            id=food.food_id,
            name=food.name,
            category=food.category,
            serving_g=food.quantity,
            calories=food.calories,
            protein_g=food.protein,
            carbs_g=food.carbs,
            fat_g=food.fat,
            fiber_g=food.fiber,
            satiety_score=food.satiety_score,
            nutrition_density=food.nutrition_density,
            cost_per_serving=food.cost_per_serving,
            prep_time_minutes=food.prep_time,
        ))
    db_session.commit()
    return food_pool
