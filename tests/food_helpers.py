"""
Builders shared by the allocation and planning tests.
"""
from services.fitness_records import OptimizedFood


def make_food(food_id, name, calories, protein, carbs, fat, density=5.0, satiety=5.0,
              category=None, cost=None, prep=None, quantity=100.0, fiber=0.0):
    return OptimizedFood(
        food_id=food_id,
        name=name,
        quantity=quantity,
        calories=calories,
        protein=protein,
        carbs=carbs,
        fat=fat,
        fiber=fiber,
        satiety_score=satiety,
        nutrition_density=density,
        cost_per_serving=cost,
        prep_time=prep,
        category=category,
    )
