from .visits import Visit, VisitTracker

__all__ = ["Visit", "VisitTracker"]
