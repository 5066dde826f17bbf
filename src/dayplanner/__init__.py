"""DayPlanner assistant pipeline."""

__version__ = "0.1.0"
