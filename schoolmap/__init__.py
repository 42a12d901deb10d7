"""
schoolmap – interactive school map with an animated tour route.
"""

from schoolmap.RouteController import Phase, RouteController
from schoolmap.School import School
from schoolmap.TourNavigator import TourNavigator
from schoolmap.ordering import sort_by_order

__all__ = ["Phase", "RouteController", "School", "TourNavigator", "sort_by_order"]
