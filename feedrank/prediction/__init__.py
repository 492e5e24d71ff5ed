"""Engagement profile learning and click prediction."""

from .predictor import ClickPredictor
from .profile import ProfileBuilder
from .triggers import TitleAnalyzer, normalize

__all__ = ["ClickPredictor", "ProfileBuilder", "TitleAnalyzer", "normalize"]
