from grading.batteries.api_battery import APITestBattery, RECIPE_API_CASES
from grading.batteries.base import TestBattery
from grading.batteries.ui_battery import UITestBattery

__all__ = [
    "APITestBattery",
    "RECIPE_API_CASES",
    "TestBattery",
    "UITestBattery",
]
