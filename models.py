from sqlalchemy import Column, Integer, Float, Date, DateTime, ForeignKey, Text, Index, JSON, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from core.database import Base
import uuid


class UserProfile(Base):
    """
    Profile fields the nutrition targets are derived from.

    Owned by the account service; the engine only reads it.
    """
    __tablename__ = "user_profile"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    display_name = Column(Text, nullable=True)
    age = Column(Integer, nullable=False)
    sex = Column(Text, nullable=True)  # 'male', 'female', 'other'
    weight_kg = Column(Float, nullable=False)
    height_cm = Column(Float, nullable=False)
    activity_level = Column(Text, default="sedentary", nullable=False)
    goal = Column(Text, default="maintenance", nullable=False)
    dietary_restrictions = Column(JSON, nullable=True)  # ["vegetarian", ...]
    allergies = Column(JSON, nullable=True)
    meals_per_day = Column(Integer, default=4, nullable=False)
    budget_constraint = Column(Text, nullable=True)  # 'low', 'medium', 'high'
    cooking_skill = Column(Text, default="beginner", nullable=False)
    time_constraint = Column(Text, default="medium", nullable=False)


class WorkoutLog(Base):
    """A logged workout session."""
    __tablename__ = "workout_log"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user_profile.id"), nullable=False, index=True)
    performed_at = Column(DateTime(timezone=True), nullable=False)
    workout_type = Column(Text, default="strength", nullable=False)  # strength, cardio, flexibility, sport
    duration_minutes = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    exercises = relationship(
        "ExerciseLog",
        back_populates="workout",
        order_by="ExerciseLog.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_workout_log_user_performed", "user_id", "performed_at"),
    )


class ExerciseLog(Base):
    """One line of a workout: sets × reps at a load."""
    __tablename__ = "exercise_log"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workout_id = Column(Uuid(as_uuid=True), ForeignKey("workout_log.id"), nullable=False, index=True)
    position = Column(Integer, default=0, nullable=False)  # order within the session
    exercise_name = Column(Text, nullable=False)
    sets = Column(Integer, default=1, nullable=False)
    reps = Column(Integer, nullable=True)
    weight_kg = Column(Float, nullable=True)
    rpe = Column(Float, nullable=True)  # 1-10, optional

    workout = relationship("WorkoutLog", back_populates="exercises")


class FoodLog(Base):
    """A logged meal or food entry."""
    __tablename__ = "food_log"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user_profile.id"), nullable=False, index=True)
    logged_at = Column(DateTime(timezone=True), nullable=False)
    name = Column(Text, nullable=True)
    calories = Column(Float, nullable=True)
    protein_g = Column(Float, nullable=True)
    carbs_g = Column(Float, nullable=True)
    fat_g = Column(Float, nullable=True)
    fiber_g = Column(Float, nullable=True)
    sugar_g = Column(Float, nullable=True)
    water_ml = Column(Float, nullable=True)
    cost = Column(Float, nullable=True)

    __table_args__ = (
        Index("ix_food_log_user_logged", "user_id", "logged_at"),
    )


class BodyWeight(Base):
    """Body-weight readings, one per user per day."""
    __tablename__ = "body_weight"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user_profile.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    weight_kg = Column(Float, nullable=False)
    body_fat_pct = Column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_body_weight_user_date"),
    )


class FoodCatalogItem(Base):
    """One serving of a catalog food."""
    __tablename__ = "food_catalog_item"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False, index=True)
    category = Column(Text, nullable=True)
    serving_g = Column(Float, nullable=False)
    calories = Column(Float, nullable=False)
    protein_g = Column(Float, default=0, nullable=False)
    carbs_g = Column(Float, default=0, nullable=False)
    fat_g = Column(Float, default=0, nullable=False)
    fiber_g = Column(Float, default=0, nullable=False)
    micronutrients = Column(JSON, nullable=True)  # {"magnesium": 43, ...}
    bioavailability = Column(JSON, nullable=True)  # {"protein": 0.95, ...}
    satiety_score = Column(Float, default=5, nullable=False)  # 1-10
    nutrition_density = Column(Float, default=5, nullable=False)  # 1-10
    cost_per_serving = Column(Float, nullable=True)
    prep_time_minutes = Column(Float, nullable=True)
