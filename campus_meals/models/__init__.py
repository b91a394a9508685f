from campus_meals.models.user import User, Role, UserRole, UserCampus, RoleName, UserStatus
from campus_meals.models.campus import Campus, MealSlot, CampusMealSlot, MealSlotName
from campus_meals.models.menu import MealItem, DailyMenu, DailyMenuItem
from campus_meals.models.meal_record import UserMealRecord, QrToken, MealReceipt
from campus_meals.models.campus_change import CampusChangeRequest, CampusChangeStatus

__all__ = [
    "User",
    "Role",
    "UserRole",
    "UserCampus",
    "RoleName",
    "UserStatus",
    "Campus",
    "MealSlot",
    "CampusMealSlot",
    "MealSlotName",
    "MealItem",
    "DailyMenu",
    "DailyMenuItem",
    "UserMealRecord",
    "QrToken",
    "MealReceipt",
    "CampusChangeRequest",
    "CampusChangeStatus",
]
