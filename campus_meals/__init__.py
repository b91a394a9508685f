"""Campus meal-management backend."""
