"""
Analytics Configuration

Backend-configurable knobs for the analytics and meal-planning engine.
Allows adjustment of analysis windows and allocation limits without code changes.

Engine functions never read this directly; the service layer injects these
values so a single request always sees one consistent configuration.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalyticsConfig(BaseSettings):
    """
    Configurable analytics settings.
    
    These can be adjusted via environment variables (ANALYTICS_ prefix).
    """
    model_config = SettingsConfigDict(
        env_prefix="ANALYTICS_",
        case_sensitive=False,
        extra="ignore",
    )
    
    # Trailing window (days) used for consistency, rest-day and score math
    window_days: int = 30
    
    # Weeks the window is assumed to span for weekly muscle-group volume
    weeks_per_window: int = 4
    
    # Default number of days generated by a meal plan request
    meal_plan_days: int = 7
    
    # Smallest usable fraction of a serving the allocator will emit
    min_serving_fraction: float = 0.1
    
    # Alternatives looked up per selected food
    alternatives_per_food: int = 3


def get_analytics_config() -> AnalyticsConfig:
    """FastAPI dependency: a fresh config per request."""
    return AnalyticsConfig()
